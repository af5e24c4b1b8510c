"""Tests for the envelope codec and tagged value conversion."""

import json
import re
from datetime import UTC, date, datetime

import pytest

from envelope_kv import DecodeError, Envelope, EnvelopeCodec, TransformError
from envelope_kv.codec import from_tagged, to_tagged


@pytest.fixture
def codec():
    return EnvelopeCodec()


# ── tagged values ────────────────────────────────────────────


def test_plain_json_values_are_untouched():
    value = {"a": [1, 2.5, "x", None, True]}
    assert to_tagged(value) == value


def test_datetime_is_tagged():
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert to_tagged(when) == {"__type": "Date", "value": "2024-01-02T03:04:05+00:00"}
    assert from_tagged(to_tagged(when)) == when


def test_date_is_tagged():
    assert from_tagged(to_tagged(date(2024, 1, 2))) == date(2024, 1, 2)


def test_non_string_keys_become_map():
    tagged = to_tagged({1: "a"})
    assert tagged == {"__type": "Map", "value": [[1, "a"]]}
    assert from_tagged(tagged) == {1: "a"}


def test_dict_with_type_key_survives():
    value = {"__type": "Date", "value": "not a date"}
    assert from_tagged(json.loads(json.dumps(to_tagged(value)))) == value


def test_regexp_round_trip():
    restored = from_tagged(to_tagged(re.compile("a.c", re.MULTILINE)))
    assert restored.pattern == "a.c"
    assert restored.flags & re.MULTILINE


def test_unknown_tag_is_left_as_mapping():
    assert from_tagged({"__type": "Blob", "value": 1}) == {"__type": "Blob", "value": 1}


def test_unserializable_type_raises():
    with pytest.raises(TypeError, match="object"):
        to_tagged(object())


# ── envelope encoding ────────────────────────────────────────


def test_encode_is_compact_json(codec):
    text = codec.encode(Envelope(data="héllo", meta={"ttl": None}))
    assert text == '{"data":"héllo","meta":{"ttl":null}}'


def test_decode_restores_envelope(codec):
    envelope = codec.decode('{"data":[1,2],"meta":{"expires":5}}')
    assert envelope.data == [1, 2]
    assert envelope.meta == {"expires": 5}


def test_decode_missing_meta(codec):
    assert codec.decode('{"data":1}').meta == {}


def test_decode_non_envelope_raises(codec):
    with pytest.raises(DecodeError):
        codec.decode('{"value":1}')
    with pytest.raises(DecodeError):
        codec.decode("not json")


def test_custom_serializer_and_deserializer():
    codec = EnvelopeCodec(
        serializer=lambda item: f"{item['data']}|{item['meta'].get('ttl')}",
        deserializer=lambda text: {"data": text.split("|")[0], "meta": {}},
    )
    text = codec.encode(Envelope(data="v", meta={"ttl": 3}))
    assert text == "v|3"
    assert codec.decode(text).data == "v"


def test_custom_serializer_through_engine(make_engine, substrate):
    engine = make_engine(
        "c",
        serializer=lambda item: "X" + json.dumps(item),
        deserializer=lambda text: json.loads(text[1:]),
    )
    engine.set("k", {"v": 1})
    assert substrate.get_item("c:k").startswith("X{")
    assert engine.get("k") == {"v": 1}


# ── encryption ───────────────────────────────────────────────


def test_encrypt_without_secret_raises(codec):
    with pytest.raises(TransformError):
        codec.encode(Envelope(data=1), encrypt=True)


def test_encrypted_payload_without_secret_cannot_decode(codec):
    sealed = EnvelopeCodec(secret="k").encode(Envelope(data=1), encrypt=True)
    with pytest.raises(DecodeError):
        codec.decode(sealed)


def test_unencrypted_payload_reads_with_secret():
    plain = EnvelopeCodec().encode(Envelope(data=1))
    assert EnvelopeCodec(secret="k").decode(plain).data == 1


def test_simple_reader_decodes_aes_payload():
    sealed = EnvelopeCodec(secret="k", crypto_engine="aes").encode(Envelope(data=1), encrypt=True)
    assert EnvelopeCodec(secret="k").decode(sealed).data == 1


def test_aes_falls_back_to_xor_when_transform_fails(monkeypatch):
    codec = EnvelopeCodec(secret="k", crypto_engine="aes")

    def broken(self, text):
        raise TransformError("no AES here")

    monkeypatch.setattr("envelope_kv.crypto.AesGcmTransform.encrypt", broken)
    sealed = codec.encode(Envelope(data="x"), encrypt=True)
    assert sealed.startswith("ENC:")
    assert not sealed.startswith("ENC:AES:")
    assert codec.decode(sealed).data == "x"


def test_configure_switches_engine():
    codec = EnvelopeCodec(secret="k")
    codec.configure(crypto_engine="aes")
    assert codec.encode(Envelope(data=1), encrypt=True).startswith("ENC:AES:")
    codec.configure(secret="other")
    assert codec.secret == "other"
    assert codec.crypto_engine == "aes"
