"""Tests for key material, the secp256k1 provider and the two signing modes."""

from __future__ import annotations

import pytest
from eth_keys import keys

from vccrypto.encoding import from_hex, normalize_hex, to_hex
from vccrypto.errors import CryptographicError
from vccrypto.hashing import keccak256, sha256
from vccrypto.keys import Identity, load_identity, save_identity
from vccrypto.modes import (
    PrefixedSigning,
    RawSigning,
    SigningMode,
    mode_for_proof_type,
    select_proof,
    strategy_for_mode,
    strategy_for_proof_type,
)
from vccrypto.provider import CryptoProvider
from vccrypto.signing import PREFIX_FRAMING, secp256k1_recover

DIGEST = keccak256(b'{"a":1}')


class TestIdentity:
    def test_formats(self, identity):
        assert identity.signing_key.startswith("0x") and len(identity.signing_key) == 66
        assert identity.verification_key.startswith("0x04") and len(identity.verification_key) == 132
        assert identity.short_address.startswith("0x") and len(identity.short_address) == 42

    def test_address_derives_from_verification_key(self, identity):
        pk = keys.PublicKey(from_hex(identity.verification_key)[1:])
        assert pk.to_checksum_address() == identity.short_address

    def test_from_signing_key_is_deterministic(self, identity):
        assert Identity.from_signing_key(identity.signing_key) == identity

    def test_public_part_excludes_signing_key(self, identity):
        public = identity.public()
        assert set(public) == {"verificationKey", "shortAddress"}
        assert identity.signing_key not in repr(identity)

    def test_distinct_identities(self, identity, other_identity):
        assert identity.short_address != other_identity.short_address

    def test_save_and_load(self, identity, tmp_path):
        path = tmp_path / "keys" / "issuer_identity.json"
        save_identity(identity, path)
        assert load_identity(path) == identity

    def test_load_rejects_mismatched_file(self, identity, other_identity, tmp_path):
        path = tmp_path / "issuer_identity.json"
        path.write_text(
            '{"signing_key": "%s", "short_address": "%s"}' % (identity.signing_key, other_identity.short_address)
        )
        with pytest.raises(ValueError):
            load_identity(path)


class TestProvider:
    def test_satisfies_protocol(self, provider):
        assert isinstance(provider, CryptoProvider)

    def test_hash_is_keccak256(self, provider):
        assert provider.hash(b"") == from_hex("0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470")
        assert provider.hash(b"abc") != sha256(b"abc")

    def test_raw_roundtrip(self, provider, identity):
        sig = provider.sign_raw(DIGEST, identity.signing_key)
        assert provider.verify_raw(DIGEST, sig, identity.verification_key)
        assert provider.recover_verification_key(DIGEST, sig) == identity.verification_key

    def test_raw_signature_uses_wallet_v(self, provider, identity):
        sig = from_hex(provider.sign_raw(DIGEST, identity.signing_key))
        assert len(sig) == 65
        assert sig[64] in (27, 28)

    def test_raw_accepts_key_without_04_prefix(self, provider, identity):
        sig = provider.sign_raw(DIGEST, identity.signing_key)
        bare = "0x" + identity.verification_key[4:].upper()
        assert provider.verify_raw(DIGEST, sig, bare)

    def test_prefixed_roundtrip(self, provider, identity):
        sig = provider.sign_prefixed(DIGEST, identity.signing_key)
        assert provider.verify_prefixed(DIGEST, sig, identity.short_address)
        assert provider.verify_prefixed(DIGEST, sig, identity.short_address.lower())
        assert provider.recover_address(DIGEST, sig) == identity.short_address

    def test_prefixed_signs_framed_digest(self, provider, identity):
        sig = provider.sign_prefixed(DIGEST, identity.signing_key)
        framed = keccak256(PREFIX_FRAMING + DIGEST)
        assert secp256k1_recover(framed, sig) == identity.verification_key

    def test_wrong_key_rejected(self, provider, identity, other_identity):
        raw = provider.sign_raw(DIGEST, identity.signing_key)
        prefixed = provider.sign_prefixed(DIGEST, identity.signing_key)
        assert not provider.verify_raw(DIGEST, raw, other_identity.verification_key)
        assert not provider.verify_prefixed(DIGEST, prefixed, other_identity.short_address)

    @pytest.mark.parametrize("bad_sig", ["", "0x", "0x1234", "not-hex", "0x" + "00" * 65, "0x" + "ff" * 65])
    def test_malformed_signature_is_false_not_error(self, provider, identity, bad_sig):
        assert provider.verify_raw(DIGEST, bad_sig, identity.verification_key) is False
        assert provider.verify_prefixed(DIGEST, bad_sig, identity.short_address) is False

    def test_non_string_inputs_are_false(self, provider, identity):
        sig = provider.sign_raw(DIGEST, identity.signing_key)
        assert provider.verify_raw(DIGEST, sig, None) is False
        assert provider.verify_prefixed(DIGEST, 12345, identity.short_address) is False

    @pytest.mark.parametrize("bad_key", ["0x1234", "zz", "0x" + "ab" * 31])
    def test_malformed_signing_key_raises(self, provider, bad_key):
        with pytest.raises(CryptographicError):
            provider.sign_raw(DIGEST, bad_key)
        with pytest.raises(CryptographicError):
            provider.sign_prefixed(DIGEST, bad_key)

    @pytest.mark.parametrize("digest", [b"short", b"", DIGEST + b"\x00"])
    def test_signing_needs_32_byte_digest(self, provider, identity, digest):
        with pytest.raises(CryptographicError):
            provider.sign_raw(digest, identity.signing_key)
        with pytest.raises(CryptographicError):
            provider.sign_prefixed(digest, identity.signing_key)

    def test_verify_with_wrong_digest_length_is_false(self, provider, identity):
        raw = provider.sign_raw(DIGEST, identity.signing_key)
        prefixed = provider.sign_prefixed(DIGEST, identity.signing_key)
        assert provider.verify_raw(DIGEST[:31], raw, identity.verification_key) is False
        assert provider.verify_prefixed(DIGEST[:31], prefixed, identity.short_address) is False

    @pytest.mark.parametrize("bad_sig", ["0x", "0x" + "11" * 64, "0x" + "11" * 66])
    def test_recovery_rejects_wrong_signature_length(self, provider, bad_sig):
        with pytest.raises(CryptographicError):
            provider.recover_address(DIGEST, bad_sig)
        with pytest.raises(CryptographicError):
            provider.recover_verification_key(DIGEST, bad_sig)


class TestModeExclusivity:
    def test_raw_signature_fails_prefixed_check(self, provider, identity):
        sig = RawSigning(provider).sign(DIGEST, identity.signing_key)
        assert not PrefixedSigning(provider).verify(DIGEST, sig, identity.short_address)

    def test_prefixed_signature_fails_raw_check(self, provider, identity):
        sig = PrefixedSigning(provider).sign(DIGEST, identity.signing_key)
        assert not RawSigning(provider).verify(DIGEST, sig, identity.verification_key)

    def test_strategies_verify_their_own_mode(self, provider, identity):
        for strategy in (RawSigning(provider), PrefixedSigning(provider)):
            sig = strategy.sign(DIGEST, identity.signing_key)
            assert strategy.verify(DIGEST, sig, strategy.key_id(identity))


class TestRegistry:
    def test_mode_other(self):
        assert SigningMode.RAW.other() is SigningMode.PREFIXED
        assert SigningMode.PREFIXED.other() is SigningMode.RAW

    def test_strategy_for_mode(self, provider):
        assert isinstance(strategy_for_mode(SigningMode.RAW, provider), RawSigning)
        assert isinstance(strategy_for_mode("prefixed", provider), PrefixedSigning)

    def test_proof_type_tags(self, provider):
        assert mode_for_proof_type("EcdsaSecp256k1RecoverySignature2020") is SigningMode.RAW
        assert mode_for_proof_type("EcdsaSecp256k1Signature2019") is SigningMode.PREFIXED
        assert isinstance(strategy_for_proof_type(RawSigning.proof_type, provider), RawSigning)

    @pytest.mark.parametrize("tag", [None, "", "Ed25519Signature2020", 42, ["EcdsaSecp256k1Signature2019"]])
    def test_unknown_proof_type(self, provider, tag):
        assert mode_for_proof_type(tag) is None
        assert strategy_for_proof_type(tag, provider) is None

    def test_key_option_names(self):
        assert RawSigning.key_option == "verification_key"
        assert PrefixedSigning.key_option == "short_address"

    def test_select_proof(self):
        first, second = {"n": 1}, {"n": 2}
        assert select_proof(first) is first
        assert select_proof([first, second]) is first
        assert select_proof([]) is None
        assert select_proof(None) is None


class TestEncoding:
    def test_hex_helpers(self):
        assert to_hex(b"\x01\xab") == "0x01ab"
        assert from_hex("0x01AB") == b"\x01\xab"
        assert from_hex("01ab") == b"\x01\xab"
        assert normalize_hex(" 0XABcd ") == "0xabcd"

    def test_from_hex_rejects_garbage(self):
        with pytest.raises(ValueError):
            from_hex("0xzz")
        with pytest.raises(TypeError):
            from_hex(None)
