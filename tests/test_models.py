import pytest

pytest.importorskip("ic")

from multisig_x402.hex import normalize_uint256
from multisig_x402.models import (
    ApprovalRequest,
    PollingConfig,
    RequestRecord,
    RequestStatus,
    SignatureResult,
    TransferAuthorizationAction,
    UserRecord,
)
from multisig_x402.validation import SignRequestParams


def _params():
    return SignRequestParams(
        vault_id=7,
        to="0x2f795904540BE35c3B66A9643F58DAC14E8fA30B",
        value="0x3e8",
        valid_after="0x0",
        valid_before="0x67890abc",
        nonce="0x123456",
        verifying_contract="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
        domain_chain_id="0x14a34",
        domain_name="USDC",
        domain_version="2",
    )


def test_action_canonicalizes_uint256_fields():
    action = TransferAuthorizationAction.from_params(_params())
    assert action.value == normalize_uint256("0x3e8")
    assert action.valid_after == "0x" + "0" * 64
    assert action.valid_before == normalize_uint256("0x67890abc")
    assert action.nonce == normalize_uint256("0x123456")
    assert action.domain_chain_id == "0x14a34"


def test_approval_request_candid_shape():
    action = TransferAuthorizationAction.from_params(_params())
    candid = ApprovalRequest(action).to_candid()
    assert candid["expire_time"] == []
    inner = candid["request_type"]["X402TransferWithAuthorization"]["action"]
    assert inner["vault_id"] == 7
    assert inner["value"] == action.value

    assert ApprovalRequest(action, expire_time=42).to_candid()["expire_time"] == [42]


def test_request_record_from_candid(record_factory):
    record = RequestRecord.from_candid(
        record_factory(3, "Executed", signature="abcd", executed_at=2_000_000_000)
    )
    assert record.id == 3
    assert record.status is RequestStatus.EXECUTED
    assert record.status.is_terminal
    assert record.execution_result == "abcd"
    assert record.executed_at == 2_000_000_000
    assert record.proposer == "2vxsx-fae"


def test_request_record_keeps_unknown_status(record_factory):
    record = RequestRecord.from_candid(record_factory(status="Paused"))
    assert record.status == "Paused"
    assert record.status_name == "Paused"


def test_signature_result_converts_ns_to_ms(record_factory):
    record = RequestRecord.from_candid(
        record_factory(3, "Executed", signature="abcd", executed_at=2_500_000_999)
    )
    result = SignatureResult.from_record(3, record)
    assert result.status == "Executed"
    assert result.signature == "abcd"
    assert result.created_at == 1_700_000_000_123
    assert result.executed_at == 2_500


def test_signature_result_keeps_zero_execution_time(record_factory):
    record = RequestRecord.from_candid(
        record_factory(3, "Executed", signature="abcd", executed_at=0)
    )
    assert SignatureResult.from_record(3, record).executed_at == 0


def test_signature_result_omits_signature_until_executed(record_factory):
    record = RequestRecord.from_candid(record_factory(status="Approved", signature="abcd"))
    result = SignatureResult.from_record(1, record)
    assert result.status == "Approved"
    assert result.signature is None
    assert result.executed_at is None


def test_user_record_from_candid():
    user = UserRecord.from_candid(
        {
            "user_principal": "2vxsx-fae",
            "user_name": "bot_default",
            "display_name": ["Bot"],
            "passkey_name": [],
            "create_time": 1,
            "update_time": 2,
        }
    )
    assert user.user_name == "bot_default"
    assert user.display_name == "Bot"
    assert user.passkey_names == []


def test_polling_config_from_value():
    assert PollingConfig.from_value(None) == PollingConfig(120, 3.0)
    assert PollingConfig.from_value({"maxAttempts": 0, "interval": 0}) == PollingConfig(0, 0.0)
    config = PollingConfig(5, 1.0)
    assert PollingConfig.from_value(config) is config
    with pytest.raises(ValueError):
        PollingConfig(max_attempts=-1)
