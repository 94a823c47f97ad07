from __future__ import annotations

import os
import uuid
from dataclasses import dataclass

import boto3

from dynoitem_py import extract_key, from_attributes, hash_key, item, key_type, range_key, to_attributes


@item
@dataclass(frozen=True)
class Note:
    pk: str = hash_key()
    sk: str = range_key()
    value: int = 0


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    client = _client()
    table_name = f"dynoitem_py_example_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "pk", "KeyType": "HASH"}, {"AttributeName": "sk", "KeyType": "RANGE"}],
        AttributeDefinitions=[
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        for sk, value in (("001", 1), ("010", 10), ("100", 100)):
            client.put_item(TableName=table_name, Item=to_attributes(Note(pk="A", sk=sk, value=value)))

        note = Note(pk="A", sk="010")
        resp = client.get_item(TableName=table_name, Key=extract_key(note))
        print("get:", from_attributes(Note, resp["Item"]))

        NoteKey = key_type(Note)
        client.delete_item(TableName=table_name, Key=to_attributes(NoteKey(pk="A", sk="100")))
        resp = client.scan(TableName=table_name, ProjectionExpression="pk, sk")
        print("keys:", [from_attributes(NoteKey, raw) for raw in resp.get("Items", [])])
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
