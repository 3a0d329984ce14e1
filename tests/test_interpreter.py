import json

import pytest

from smartteam_live.client.interpreter import apply_frame, decode_frame
from smartteam_live.shared.models import FactSet


def _facts(**kwargs) -> FactSet:
    return FactSet(**kwargs)


def test_gesture_overwrites_label_and_confidence():
    facts = _facts(label="fist", confidence=0.4)
    assert apply_frame('{"type":"gesture","label":"wave","confidence":0.87}', facts)
    assert facts.label == "wave"
    assert facts.confidence == 0.87


def test_presence_overwrites_subscribers():
    facts = _facts()
    assert apply_frame('{"type":"presence","subscribers":3}', facts)
    assert facts.subscribers == 3


def test_malformed_frame_keeps_previous_values():
    facts = _facts()
    apply_frame('{"type":"presence","subscribers":3}', facts)
    assert not apply_frame("not json", facts)
    assert facts.subscribers == 3


@pytest.mark.parametrize("raw", ["3", "null", '"gesture"', "[1, 2]", "", None, b"\x80abc"])
def test_non_object_frames_are_ignored(raw):
    facts = _facts(label="wave", confidence=0.5, subscribers=2)
    assert not apply_frame(raw, facts)
    assert facts == _facts(label="wave", confidence=0.5, subscribers=2)


@pytest.mark.parametrize("msg", [{"type": "chat", "label": "x"}, {"label": "wave", "confidence": 1}, {"type": None}])
def test_unknown_or_missing_type_is_ignored(msg):
    facts = _facts(label="wave", confidence=0.5)
    assert not apply_frame(json.dumps(msg), facts)
    assert facts.label == "wave"


@pytest.mark.parametrize(
    "msg, label, confidence",
    [
        ({"type": "gesture"}, "", 0.0),
        ({"type": "gesture", "label": 42, "confidence": "0.25"}, "", 0.25),
        ({"type": "gesture", "label": "ok", "confidence": "lots"}, "ok", 0.0),
        ({"type": "gesture", "label": "ok", "confidence": None}, "ok", 0.0),
        ({"type": "gesture", "label": "ok", "confidence": True}, "ok", 1.0),
        ({"type": "gesture", "label": "ok", "confidence": [0.5]}, "ok", 0.0),
    ],
)
def test_gesture_fields_fall_back_to_defaults(msg, label, confidence):
    facts = _facts(label="previous", confidence=0.9)
    assert apply_frame(json.dumps(msg), facts)
    assert facts.label == label
    assert facts.confidence == confidence


def test_gesture_with_non_finite_confidence_defaults_to_zero():
    facts = _facts(confidence=0.9)
    # json.dumps emits NaN/Infinity literals and json.loads accepts them.
    apply_frame(json.dumps({"type": "gesture", "label": "x", "confidence": float("nan")}), facts)
    assert facts.confidence == 0.0
    apply_frame('{"type":"gesture","label":"x","confidence":Infinity}', facts)
    assert facts.confidence == 0.0


@pytest.mark.parametrize("subscribers", [None, "many", "Infinity", [], {}])
def test_presence_keeps_last_good_count(subscribers):
    facts = _facts(subscribers=5)
    msg = {"type": "presence"} if subscribers is None else {"type": "presence", "subscribers": subscribers}
    apply_frame(json.dumps(msg), facts)
    assert facts.subscribers == 5


def test_presence_accepts_numeric_strings():
    facts = _facts(subscribers=5)
    apply_frame('{"type":"presence","subscribers":"7"}', facts)
    assert facts.subscribers == 7


def test_bytes_frames_are_decoded():
    facts = _facts()
    apply_frame(b'{"type":"gesture","label":"wave","confidence":0.5}', facts)
    assert facts.label == "wave"


def test_interpreter_never_touches_connected():
    facts = _facts(connected=True)
    apply_frame('{"type":"presence","subscribers":1}', facts)
    apply_frame("garbage", facts)
    assert facts.connected is True


def test_decode_frame_returns_dict_only():
    assert decode_frame('{"a": 1}') == {"a": 1}
    assert decode_frame("[]") is None
    assert decode_frame("{") is None


def test_gesture_with_oversized_integer_confidence_keeps_label():
    facts = _facts(label="fist", confidence=0.9)
    assert apply_frame('{"type":"gesture","label":"wave","confidence":' + "9" * 400 + "}", facts)
    assert facts.label == "wave"
    assert facts.confidence == 0.0


def test_presence_with_oversized_integer_keeps_last_count():
    facts = _facts(subscribers=4)
    assert apply_frame('{"type":"presence","subscribers":' + "9" * 400 + "}", facts)
    assert facts.subscribers == 4


def test_presence_with_explicit_null_keeps_last_count():
    # null is treated like a missing field, not as zero subscribers.
    facts = _facts(subscribers=4)
    assert apply_frame('{"type":"presence","subscribers":null}', facts)
    assert facts.subscribers == 4
