from __future__ import annotations

import base64
import random

from trust_car.decoder import decode_app_args, decode_transaction
from trust_car.methods import METHODS, METHODS_BY_NAME, STRING, decode_return_value, encode_operation, RETURN_PREFIX
from trust_car.operations import AddService, GetInfo, Register, Transfer, Unknown

REGISTER = METHODS_BY_NAME["registerVehicle"].selector
TRANSFER = METHODS_BY_NAME["transferOwnership"].selector


def _txn(args: list[bytes], app_id: int = 1001, **extra) -> dict:
    txn = {
        "id": "TXID1",
        "sender": "SENDER",
        "tx-type": "appl",
        "confirmed-round": 42,
        "round-time": 1_700_000_000,
        "application-transaction": {
            "application-id": app_id,
            "application-args": [base64.b64encode(a).decode() for a in args],
        },
    }
    txn.update(extra)
    return txn


def test_selector_table_is_consistent() -> None:
    selectors = [m.selector for m in METHODS]
    assert all(len(s) == 4 for s in selectors)
    assert len(set(selectors)) == len(selectors)
    assert [m.name for m in METHODS] == ["registerVehicle", "transferOwnership", "addServiceRecord", "getInfo"]


def test_encoded_operations_decode_back() -> None:
    for operation in (
        Register("12D12345"),
        Transfer("12D12345", "GBKB7IXUZKW23YZBVZ4PQRPGZL2F4IMLYGKHLSGCG3ACGRV3OH3YZUIM"),
        AddService("12D12345", "Oil Change at 50000km - Condition: Good"),
        GetInfo(),
    ):
        assert decode_app_args(encode_operation(operation)) == operation


def test_arguments_are_arc4_strings() -> None:
    args = encode_operation(Register("12D12345"))
    assert args[0] == REGISTER
    assert args[1] == b"\x00\x0812D12345"


def test_unrecognized_or_missing_selector_is_unknown() -> None:
    assert decode_app_args([]) == Unknown(reason="no application args")
    assert decode_app_args(None) == Unknown(reason="no application args")

    op = decode_app_args([b"\xde\xad\xbe\xef", STRING.encode("12D12345")])
    assert isinstance(op, Unknown)
    assert op.selector == "deadbeef"
    assert op.reason == "unrecognized method selector"

    assert isinstance(decode_app_args([REGISTER[:3]]), Unknown)


def test_garbled_arguments_are_unknown_with_best_effort_fields() -> None:
    truncated = decode_app_args([TRANSFER, STRING.encode("12D12345")])
    assert isinstance(truncated, Unknown)
    assert truncated.args == ("12D12345",)
    assert "expected 2 args, got 1" in truncated.reason

    bad_utf8 = decode_app_args([TRANSFER, STRING.encode("12D12345"), b"\x00\x02\xff\xfe"])
    assert isinstance(bad_utf8, Unknown)
    assert bad_utf8.args == ("12D12345",)
    assert "argument 2" in bad_utf8.reason

    assert isinstance(decode_app_args([REGISTER, b"\x00\x09abc"]), Unknown)
    assert isinstance(decode_app_args([REGISTER, b"\x00"]), Unknown)
    assert isinstance(decode_app_args([REGISTER, b""]), Unknown)
    assert isinstance(decode_app_args([REGISTER, STRING.encode("A"), STRING.encode("B")]), Unknown)
    assert isinstance(decode_app_args(["not-bytes"]), Unknown)


def test_non_bytes_arguments_are_rejected_without_conversion() -> None:
    huge = decode_app_args([REGISTER, 10**12])
    assert isinstance(huge, Unknown)
    assert huge.reason == "args are not bytes: bytes, int"

    assert isinstance(decode_app_args(7), Unknown)
    assert isinstance(decode_app_args(b"\x00\x01"), Unknown)
    assert decode_app_args([bytearray(REGISTER), memoryview(STRING.encode("12D12345"))]) == Register("12D12345")


def test_decoding_is_total_over_arbitrary_bytes() -> None:
    rng = random.Random(7)
    selectors = [m.selector for m in METHODS] + [b"", b"\x00\x00\x00\x00"]
    for _ in range(500):
        args = [rng.choice(selectors)]
        for _ in range(rng.randint(0, 3)):
            args.append(bytes(rng.getrandbits(8) for _ in range(rng.randint(0, 12))))
        op = decode_app_args(args)
        assert isinstance(op, (Register, Transfer, AddService, GetInfo, Unknown))


def test_decode_transaction_reads_indexer_record() -> None:
    decoded = decode_transaction(_txn(encode_operation(Register("12D12345"))))

    assert decoded.operation == Register("12D12345")
    assert decoded.tx_id == "TXID1"
    assert decoded.sender == "SENDER"
    assert decoded.round == 42
    assert decoded.timestamp == 1_700_000_000
    assert decoded.application_id == 1001
    assert not decoded.is_unknown


def test_decode_transaction_never_raises() -> None:
    assert decode_transaction(None).is_unknown
    assert decode_transaction("garbage").is_unknown
    assert decode_transaction({}).is_unknown
    assert decode_transaction({"tx-type": "pay", "id": "P1"}).operation == Unknown(reason="not an application call")

    bad_b64 = _txn([])
    bad_b64["application-transaction"]["application-args"] = ["!!!not base64"]
    decoded = decode_transaction(bad_b64)
    assert decoded.is_unknown
    assert decoded.tx_id == "TXID1"

    not_a_list = _txn([])
    not_a_list["application-transaction"]["application-args"] = "EeAp/Q=="
    assert decode_transaction(not_a_list).is_unknown

    odd_round = decode_transaction(_txn(encode_operation(GetInfo()), **{"confirmed-round": "x", "round-time": None}))
    assert odd_round.round == 0
    assert odd_round.timestamp is None


def test_return_value_is_read_from_logs() -> None:
    logs = [
        base64.b64encode(b"unrelated").decode(),
        base64.b64encode(RETURN_PREFIX + STRING.encode("Vehicle 12D12345 registered")).decode(),
    ]
    assert decode_return_value(logs) == "Vehicle 12D12345 registered"
    assert decode_return_value(None) is None
