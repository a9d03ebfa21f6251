from verifier.events import LoggingObserver
from verifier.verify import CredentialVerifier
from vccrypto.settings import configure_logging
from wallet.storage import load_credential_bundle

def verify_stored(bundle=None):
    bundle = bundle or load_credential_bundle()
    verifier = CredentialVerifier(observer=LoggingObserver())
    # the issuer's public keys were fetched alongside the credential
    return verifier.verify(bundle["credential"], bundle["issuer"])

def main():
    configure_logging()
    result = verify_stored()
    print("Stored credential valid:", result.verified)
    if not result.verified:
        print("Reason:", result.error)

if __name__ == "__main__":
    main()
