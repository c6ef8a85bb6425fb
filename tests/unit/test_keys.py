import re

import pytest

import tracker.utils.keys as keys
from tracker.errors import InvalidKeyPartError
from tracker.utils.keys import ID_ALPHABET, create_key, hash_it, nid

def test_create_key_joins_prefix_and_parts():
    assert create_key(["orders", "eu"], "history") == "history:orders:eu"
    assert create_key(["a"], "p", sep="/") == "p/a"

@pytest.mark.parametrize("parts,prefix", [([""], "history"), (["a", ""], "history"), (["a"], "")])
def test_create_key_rejects_empty_parts(parts, prefix):
    with pytest.raises(InvalidKeyPartError):
        create_key(parts, prefix)

def test_invalid_key_part_is_a_value_error():
    with pytest.raises(ValueError):
        create_key([""], "history")

def test_nid_length_alphabet_and_prefix():
    n = nid(length=16)
    assert len(n) == 16
    assert set(n) <= set(ID_ALPHABET)
    p = nid("hist", 8)
    assert p.startswith("hist_") and len(p) == len("hist_") + 8

def test_nid_falls_back_to_microseconds(monkeypatch):
    def _broken(_):
        raise OSError("no entropy")
    monkeypatch.setattr(keys.secrets, "choice", _broken)
    out = nid("x")
    assert re.fullmatch(r"x_\d+", out)

def test_hash_it_is_fixed_size_and_stable():
    assert hash_it("order-42") == hash_it("order-42")
    assert hash_it("order-42") != hash_it("order-43")
    assert len(hash_it("")) == 32 and len(hash_it("x" * 10_000)) == 32
