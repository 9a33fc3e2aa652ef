from ladder.services.credentials import hash_credential, verify_credential


def test_hash_round_trip():
    hashed = hash_credential("4821")

    assert hashed.hash != "4821"
    assert hashed.hash.startswith(hashed.salt[:7])
    assert verify_credential("4821", hashed.hash, hashed.salt)
    assert not verify_credential("4822", hashed.hash, hashed.salt)


def test_each_credential_gets_its_own_salt():
    first = hash_credential("4821")
    second = hash_credential("4821")

    assert first.salt != second.salt
    assert first.hash != second.hash


def test_verify_rejects_malformed_input():
    hashed = hash_credential("4821")

    assert not verify_credential("", hashed.hash, hashed.salt)
    assert not verify_credential("4821", hashed.hash, "not-a-salt")
    assert not verify_credential("4821", "", "")
