"""Pointer attribute, receipt-handle markers and compatibility JSON bodies."""

import json

import pytest

from sqs_extended.constants import S3_BUCKET_NAME_MARKER, S3_KEY_MARKER
from sqs_extended.exceptions import MalformedPointerError
from sqs_extended.pointer import (
    StoragePointer,
    decode_attribute,
    decode_body_pointer,
    decode_message_pointer,
    embed_in_token,
    encode_attribute,
    encode_body_pointer,
    extract_from_token,
    parse_pointer_text,
    strip_token,
)


# ---------- attribute form ----------

def test_encode_attribute():
    attr = encode_attribute(StoragePointer(key="abc-123", bucket="my-bucket"))
    assert attr == {"DataType": "String", "StringValue": "(my-bucket)abc-123"}


def test_decode_attribute_sdk_casing():
    attrs = {"S3MessageBodyKey": {"DataType": "String", "StringValue": "(b1)k1"}}
    assert decode_attribute(attrs) == StoragePointer(key="k1", bucket="b1")


def test_decode_attribute_event_casing():
    attrs = {"S3MessageBodyKey": {"dataType": "String", "stringValue": "(b1)k1"}}
    assert decode_attribute(attrs) == StoragePointer(key="k1", bucket="b1")


def test_decode_attribute_absent():
    assert decode_attribute({}) is None
    assert decode_attribute(None) is None
    assert decode_attribute({"Other": {"DataType": "String", "StringValue": "x"}}) is None


def test_decode_attribute_without_value_is_malformed():
    attrs = {"S3MessageBodyKey": {"DataType": "String"}}
    with pytest.raises(MalformedPointerError):
        decode_attribute(attrs)


def test_decode_attribute_bad_pattern_is_malformed():
    attrs = {"S3MessageBodyKey": {"DataType": "String", "StringValue": "no-parens"}}
    with pytest.raises(MalformedPointerError):
        decode_attribute(attrs)


def test_legacy_alias_is_used_when_primary_missing():
    attrs = {"OldKey": {"DataType": "String", "StringValue": "(b2)k2"}}
    names = ("S3MessageBodyKey", "OldKey")
    assert decode_attribute(attrs, names) == StoragePointer(key="k2", bucket="b2")


def test_primary_name_wins_over_alias():
    attrs = {
        "OldKey": {"DataType": "String", "StringValue": "(old)k"},
        "S3MessageBodyKey": {"DataType": "String", "StringValue": "(new)k"},
    }
    assert decode_attribute(attrs, ("S3MessageBodyKey", "OldKey")).bucket == "new"


def test_parse_splits_on_first_paren():
    assert parse_pointer_text("(bucket)key)with)parens") == StoragePointer(
        key="key)with)parens", bucket="bucket"
    )


def test_parse_empty_bucket_means_default():
    pointer = parse_pointer_text("()only-key")
    assert pointer.bucket is None
    assert pointer.with_default_bucket("fallback").bucket == "fallback"


def test_parse_missing_key_is_malformed():
    with pytest.raises(MalformedPointerError):
        parse_pointer_text("(bucket)")


# ---------- receipt handle ----------

@pytest.mark.parametrize("token", [
    "AQEBwJnKyrHigUMZj6rYigCgxlaS3SLy0a",
    "",
    "handle/with+special=chars==",
    "(looks)like-a-pointer",
])
def test_token_round_trip(token):
    embedded = embed_in_token("bucket-a", "key-1", token)
    assert extract_from_token(embedded) == ("bucket-a", "key-1")
    assert strip_token(embedded) == token


def test_embedded_token_layout():
    embedded = embed_in_token("b", "k", "orig")
    assert embedded == (
        f"{S3_BUCKET_NAME_MARKER}b{S3_BUCKET_NAME_MARKER}{S3_KEY_MARKER}k{S3_KEY_MARKER}orig"
    )


def test_plain_token_has_no_pointer():
    assert extract_from_token("plain-handle") == (None, None)
    assert strip_token("plain-handle") == "plain-handle"


def test_token_with_only_key_markers():
    token = f"{S3_KEY_MARKER}k{S3_KEY_MARKER}orig"
    assert extract_from_token(token) == (None, "k")
    assert strip_token(token) == "orig"


# ---------- compatibility JSON body ----------

def test_decode_body_pointer_object():
    body = json.dumps({"s3BucketName": "b", "s3Key": "k"})
    assert decode_body_pointer(body) == StoragePointer(key="k", bucket="b")


def test_decode_body_pointer_class_array():
    body = json.dumps([
        "software.amazon.payloadoffloading.PayloadS3Pointer",
        {"s3BucketName": "b", "s3Key": "k"},
    ])
    assert decode_body_pointer(body) == StoragePointer(key="k", bucket="b")


def test_encode_body_pointer_writes_class_tag():
    encoded = json.loads(encode_body_pointer(StoragePointer(key="k", bucket="b")))
    assert encoded == [
        "software.amazon.payloadoffloading.PayloadS3Pointer",
        {"s3BucketName": "b", "s3Key": "k"},
    ]
    assert decode_body_pointer(json.dumps(encoded)) == StoragePointer(key="k", bucket="b")


@pytest.mark.parametrize("body", [
    "not json",
    json.dumps({"s3BucketName": "b"}),
    json.dumps(["x"]),
    json.dumps(["com.example.OtherPointer", {"s3BucketName": "b", "s3Key": "k"}]),
    json.dumps("string"),
    None,
])
def test_decode_body_pointer_malformed(body):
    with pytest.raises(MalformedPointerError):
        decode_body_pointer(body)


def test_message_pointer_prefers_attribute_form():
    message = {
        "Body": encode_body_pointer(StoragePointer(key="body-key", bucket="body-bucket")),
        "MessageAttributes": {
            "S3MessageBodyKey": {"DataType": "String", "StringValue": "(attr-bucket)attr-key"},
            "ExtendedPayloadSize": {"DataType": "Number", "StringValue": "300000"},
        },
    }
    pointer = decode_message_pointer(message, compatibility_mode=True)
    assert pointer == StoragePointer(key="attr-key", bucket="attr-bucket")


def test_message_pointer_from_compatible_body():
    message = {
        "Body": encode_body_pointer(StoragePointer(key="k", bucket="b")),
        "MessageAttributes": {"SQSLargePayloadSize": {"DataType": "Number", "StringValue": "300000"}},
    }
    assert decode_message_pointer(message, compatibility_mode=True) == StoragePointer(key="k", bucket="b")
    # Without compatibility mode the body is left alone
    assert decode_message_pointer(message) is None


def test_message_pointer_signalled_but_unparsable():
    message = {
        "Body": "plain text",
        "MessageAttributes": {"ExtendedPayloadSize": {"DataType": "Number", "StringValue": "1"}},
    }
    with pytest.raises(MalformedPointerError):
        decode_message_pointer(message, compatibility_mode=True)


def test_message_pointer_event_record_shape():
    record = {
        "body": "k",
        "messageAttributes": {"S3MessageBodyKey": {"dataType": "String", "stringValue": "(b)k"}},
    }
    assert decode_message_pointer(record) == StoragePointer(key="k", bucket="b")
