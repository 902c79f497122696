import pytest

PROPOSER = "2vxsx-fae"


def candid_record(request_id=1, status="Pending", signature=None, executed_at=None):
    """A ``RequestRecord`` as ic-py decodes it from ``get_request``."""
    return {
        "id": request_id,
        "status": {status: None},
        "created_at": 1_700_000_000_123_456_789,
        "proposer": PROPOSER,
        "approvals": [],
        "execution_result": [] if signature is None else [signature],
        "executed_at": [] if executed_at is None else [executed_at],
        "request": {
            "request_type": {"X402TransferWithAuthorization": {"action": {}}},
            "expire_time": [],
        },
    }


@pytest.fixture
def record_factory():
    return candid_record
