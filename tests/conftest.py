"""Shared fixtures: a realistic event-watcher payload."""

import copy

import pytest

XRD = "resource_rdx1tknxxxxxxxxxradxrdxxxxxxxxx009923554798xxxxxxxxxradxrd"
ACCOUNT = "account_rdx12y7md4spfq5qy7e3mfjpa52937uvkxf0nmydsu5wydkkxw3qx6nghn"

_PAYLOAD = {
    "eventWatcherId": "watcher-1",
    "transactionId": "txid_rdx1qqq",
    "events": [
        {
            "eventName": "LockFeeEvent",
            "emitter": {
                "globalEmitter": "internal_vault_rdx1tz",
                "methodEmitter": "lock_fee",
                "outerEmitter": "account_rdx1other",
            },
            "data": {
                "kind": "Tuple",
                "type_name": "LockFeeEvent",
                "fields": [{"kind": "Decimal", "field_name": "amount", "value": "0.38"}],
            },
        },
        {
            "eventName": "WithdrawEvent",
            "emitter": {
                "globalEmitter": ACCOUNT,
                "methodEmitter": "withdraw",
                "outerEmitter": ACCOUNT,
            },
            "data": {
                "kind": "Tuple",
                "type_name": "WithdrawEvent",
                "fields": [
                    {
                        "kind": "Reference",
                        "type_name": "ResourceAddress",
                        "field_name": "resource_address",
                        "value": XRD,
                    },
                    {"kind": "Decimal", "field_name": "amount", "value": "25"},
                ],
            },
        },
    ],
    "message": {
        "type": "Plaintext",
        "content": {"type": "String", "value": "thanks for lunch"},
    },
}


@pytest.fixture
def payload():
    return copy.deepcopy(_PAYLOAD)
