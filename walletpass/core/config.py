from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Apple Developer
    apple_team_id: str = ""
    apple_pass_type_id: str = ""
    apple_web_service_url: str = ""

    # Certificates (PEM signer + key, or a .p12 bundle in apple_cert_path)
    apple_cert_path: str = "certs/signerCert.pem"
    apple_key_path: str | None = None  # defaults to apple_cert_path
    apple_cert_password: str | None = None
    apple_wwdr_path: str = "certs/wwdr.pem"

    # Pass branding
    organization_name: str = "Walletpass"

    # Google Wallet
    google_wallet_issuer_id: str = "test-issuer"
    google_wallet_credentials_path: str | None = None
    google_wallet_origins: list[str] = []
    google_http_timeout: float = 15.0

    # APNs
    apns_use_sandbox: bool = False
    apns_cert_path: str = "certs/combined.pem"
    apns_timeout: float = 10.0

    # Integrity markers
    integrity_secret: str = "walletpass-dev-secret"

    # Server
    base_url: str = "http://localhost:8000"
    debug: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def get_web_service_url() -> str:
    """
    Get the PassKit web service URL embedded in Apple passes.

    Falls back to the wallet router mounted on base_url.
    """
    if settings.apple_web_service_url:
        return settings.apple_web_service_url
    return f"{settings.base_url.rstrip('/')}/wallet"
