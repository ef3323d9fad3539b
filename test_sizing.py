"""Message size estimation."""

from sqs_extended.constants import DEFAULT_MESSAGE_SIZE_THRESHOLD
from sqs_extended.sizing import attributes_size, is_large, message_size


def test_no_attributes_counts_only_body():
    assert attributes_size(None) == 0
    assert attributes_size({}) == 0
    assert message_size({"MessageBody": "hello"}) == 5


def test_string_attribute_size():
    attrs = {"attr": {"DataType": "String", "StringValue": "value"}}
    # 4 + 6 + 5
    assert attributes_size(attrs) == 15


def test_binary_attribute_size():
    attrs = {"bin": {"DataType": "Binary", "BinaryValue": b"\x00\x01\x02"}}
    assert attributes_size(attrs) == 3 + 6 + 3


def test_multiple_attributes_and_utf8_body():
    attrs = {
        "a": {"DataType": "String", "StringValue": "x"},
        "n": {"DataType": "Number", "StringValue": "42"},
    }
    body = "héllo"  # é is two bytes
    assert message_size({"MessageBody": body, "MessageAttributes": attrs}) == (1 + 6 + 1) + (1 + 6 + 2) + 6


def test_missing_data_type_counts_zero():
    attrs = {"odd": {"StringValue": "abc"}}
    assert attributes_size(attrs) == 3 + 3


def test_event_record_casing_is_counted():
    attrs = {"attr": {"dataType": "String", "stringValue": "value"}}
    assert attributes_size(attrs) == 15


def test_threshold_boundary():
    at = {"MessageBody": "x" * DEFAULT_MESSAGE_SIZE_THRESHOLD}
    over = {"MessageBody": "x" * (DEFAULT_MESSAGE_SIZE_THRESHOLD + 1)}
    assert is_large(at) is False
    assert is_large(over) is True


def test_attributes_push_message_over_threshold():
    attrs = {"a": {"DataType": "String", "StringValue": "x"}}  # 8 bytes
    msg = {"MessageBody": "x" * 100, "MessageAttributes": attrs}
    assert is_large(msg, threshold=108) is False
    assert is_large(msg, threshold=107) is True


def test_one_mebibyte_body_is_large():
    assert is_large({"MessageBody": "x" * 1_048_576}, 262_144) is True


def test_small_body_is_not_large():
    assert is_large({"MessageBody": "small"}) is False
