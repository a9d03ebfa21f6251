import logging

from flask import Flask, jsonify, request

from issuer.issue import CredentialIssuer
from issuer.revoke import ModeConverter
from vccrypto.errors import ConfigurationError, CredentialError, CryptographicError
from vccrypto.keys import DEFAULT_IDENTITY_PATH, Identity, ensure_identity
from vccrypto.modes import SigningMode
from vccrypto.settings import DEFAULT_VALIDITY_DAYS, ISSUER_HOST, ISSUER_PORT, configure_logging
from verifier.events import LoggingObserver
from verifier.verify import CredentialVerifier

logger = logging.getLogger(__name__)

def create_app(identity: Identity = None, provider=None) -> Flask:
    app = Flask(__name__)
    issuer = CredentialIssuer(provider)
    verifier = CredentialVerifier(provider, observer=LoggingObserver())
    converter = ModeConverter(provider)

    def get_identity() -> Identity:
        return identity or ensure_identity(DEFAULT_IDENTITY_PATH, provider)

    def body() -> dict:
        data = request.get_json(force=True, silent=True)
        if not isinstance(data, dict):
            raise ConfigurationError("Request body must be a JSON object")
        return data

    @app.errorhandler(ConfigurationError)
    def bad_request(exc):
        return jsonify(exc.to_dict()), 400

    @app.errorhandler(CryptographicError)
    def crypto_failure(exc):
        logger.error("Signing failed: %s", exc)
        return jsonify(exc.to_dict()), 500

    @app.errorhandler(CredentialError)
    def credential_failure(exc):
        return jsonify(exc.to_dict()), 422

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    @app.get("/identity")
    def public_identity():
        return jsonify(get_identity().public())

    @app.post("/issue")
    def issue():
        """
        Request JSON:
        {
            "issuer": "did:..." | {"id": "did:...", ...},
            "credentialSubject": {...} | [{...}],
            "mode": "raw" | "prefixed",
            "validityDays": number | null (optional, defaults to DEFAULT_VALIDITY_DAYS; null means no expiry),
            "credentialTypes": [...] (optional),
            "additionalContexts": [...] (optional),
            "credentialId": "urn:..." (optional)
        }
        """
        data = body()
        issuer_field = data.get("issuer")
        subject = data.get("credentialSubject")
        if not issuer_field or not isinstance(issuer_field, (str, dict)):
            raise ConfigurationError("Invalid or missing issuer")
        if not subject or not isinstance(subject, (dict, list)):
            raise ConfigurationError("Invalid or missing credentialSubject")

        validity_days = data.get("validityDays", DEFAULT_VALIDITY_DAYS)
        if validity_days is not None and (isinstance(validity_days, bool) or not isinstance(validity_days, (int, float))):
            raise ConfigurationError("validityDays must be a number")

        ident = get_identity()
        try:
            mode = SigningMode(data.get("mode", SigningMode.RAW.value))
        except ValueError:
            raise ConfigurationError(f"Unknown signing mode: {data.get('mode')!r}") from None

        vc = issuer.issue(
            issuer_field,
            subject,
            ident.signing_key,
            mode=mode,
            verification_key=ident.verification_key,
            short_address=ident.short_address,
            validity_days=validity_days,
            credential_types=data.get("credentialTypes"),
            additional_contexts=data.get("additionalContexts"),
            credential_id=data.get("credentialId"),
        )
        return jsonify({"credential": vc, "credentialHash": converter.get_hash(vc)}), 200

    @app.post("/verify")
    def verify():
        data = body()
        key_material = data.get("keyMaterial") or get_identity().public()
        result = verifier.verify(
            data.get("credential"),
            key_material,
            check_expiration=data.get("checkExpiration", True),
            check_not_before=data.get("checkNotBefore", True),
        )
        return jsonify(result.to_dict()), 200

    @app.post("/convert")
    def convert():
        data = body()
        credential = data.get("credential")
        if not isinstance(credential, dict):
            raise ConfigurationError("Invalid or missing credential")
        ident = get_identity()
        converted = converter.convert_mode(
            credential,
            ident.signing_key,
            ident,
            target_mode=data.get("targetMode"),
        )
        return jsonify({
            "credential": converted,
            "credentialHash": converter.get_hash(converted),
            "hashConsistent": converter.verify_hash_consistency(credential, converted),
        }), 200

    @app.post("/hash")
    def credential_hash():
        data = body()
        credential = data.get("credential")
        if not isinstance(credential, dict):
            raise ConfigurationError("Invalid or missing credential")
        return jsonify({"credentialHash": converter.get_hash(credential)})

    return app

if __name__ == '__main__':
    configure_logging()
    create_app().run(host=ISSUER_HOST, port=ISSUER_PORT, debug=False)
