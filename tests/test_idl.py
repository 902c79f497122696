import pytest

pytest.importorskip("ic")

from ic.candid import Types, decode, encode

from multisig_x402.idl import (
    MULTISIG_INTERFACE,
    REGISTER_INTERFACE,
    REQUEST_RECORD,
    USER,
    field,
    first_value,
    idl_hash,
    unwrap_opt,
    variant_tag,
)
from multisig_x402.models import RequestRecord, RequestStatus, UserRecord

ANONYMOUS = "2vxsx-fae"


def test_idl_hash_matches_candid_ids():
    assert idl_hash("Ok") == 17724
    assert idl_hash("Err") == 3456837


def test_field_reads_plain_and_hashed_labels():
    assert field({"status": 1}, "status") == 1
    assert field({f"_{idl_hash('status')}": 2}, "status") == 2
    assert field({idl_hash("status"): 3}, "status") == 3
    assert field({}, "status", "missing") == "missing"


def test_variant_tag_known_and_unknown():
    assert variant_tag({"Executed": None}, ["Pending", "Executed"]) == ("Executed", None)
    hashed = {f"_{idl_hash('Ok')}": {"x": 1}}
    assert variant_tag(hashed, ["Ok", "Err"]) == ("Ok", {"x": 1})
    assert variant_tag({"Paused": None}, ["Pending"]) == ("Paused", None)
    with pytest.raises(ValueError):
        variant_tag({"a": 1, "b": 2}, ["a"])


def test_unwrap_opt():
    assert unwrap_opt([]) is None
    assert unwrap_opt([5]) == 5
    assert unwrap_opt(None) is None
    assert unwrap_opt(7) == 7


def test_first_value_unwraps_decoded_list():
    assert first_value([{"type": "nat64", "value": 9}]) == 9
    assert first_value([]) is None
    assert first_value(4) == 4


def test_interface_method_lookup():
    assert MULTISIG_INTERFACE.method("get_request").arg_types == (Types.Nat64,)
    assert len(REGISTER_INTERFACE.method("register_ii_user").arg_types) == 3
    with pytest.raises(KeyError):
        MULTISIG_INTERFACE.method("approve")


def test_encode_args_checks_arity():
    args = MULTISIG_INTERFACE.encode_args("get_request", [1])
    assert args[0]["value"] == 1
    with pytest.raises(ValueError):
        MULTISIG_INTERFACE.encode_args("get_request", [])


def _untyped(candid_type, value):
    """Encode ``value`` the way a canister replies, then decode it without types."""
    return first_value(decode(encode([{"type": candid_type, "value": value}])))


def test_request_record_survives_untyped_decoding():
    action = {
        "to": "0x" + "11" * 20,
        "valid_after": "0x" + "00" * 32,
        "valid_before": "0x" + "ff" * 32,
        "value": "0x" + "00" * 31 + "0a",
        "domain_name": "USD Coin",
        "domain_version": "2",
        "vault_id": 7,
        "domain_chain_id": "0x" + "00" * 31 + "01",
        "nonce": "0x" + "22" * 32,
        "verifying_contract": "0x" + "33" * 20,
    }
    reply = {
        "id": 42,
        "execution_result": ["0xdeadbeef"],
        "status": {"Executed": None},
        "executed_at": [0],
        "request": {
            "request_type": {"X402TransferWithAuthorization": {"action": action}},
            "expire_time": [],
        },
        "created_at": 1_700_000_000_000_000_000,
        "proposer": ANONYMOUS,
        "approvals": [{"approved": True, "approver": ANONYMOUS, "timestamp": 5}],
    }

    decoded = _untyped(Types.Opt(REQUEST_RECORD), [reply])
    assert "id" not in unwrap_opt(decoded)

    record = RequestRecord.from_candid(unwrap_opt(decoded))
    assert record.id == 42
    assert record.status is RequestStatus.EXECUTED
    assert record.execution_result == "0xdeadbeef"
    assert record.executed_at == 0
    assert record.created_at == 1_700_000_000_000_000_000
    assert record.proposer == ANONYMOUS
    assert record.approvals[0].approver == ANONYMOUS
    assert record.approvals[0].approved is True


def test_register_reply_survives_untyped_decoding():
    user = {
        "user_principal": ANONYMOUS,
        "user_name": "bot_default",
        "display_name": ["Bot"],
        "passkey_name": [["laptop"]],
        "create_time": 1,
        "update_time": 2,
    }
    reply = _untyped(Types.Variant({"Ok": USER, "Err": Types.Text}), {"Ok": user})

    tag, payload = variant_tag(reply, ["Ok", "Err"])
    assert tag == "Ok"
    record = UserRecord.from_candid(payload)
    assert record.user_principal == ANONYMOUS
    assert record.user_name == "bot_default"
    assert record.display_name == "Bot"
    assert record.passkey_names == ["laptop"]
