from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "LMS Backend"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # SSLCOMMERZ
    SSLCOMMERZ_STORE_ID: str
    SSLCOMMERZ_STORE_PASSWORD: str
    SSLCOMMERZ_ENVIRONMENT: str = "sandbox"  # sandbox | live
    SSLCOMMERZ_SANDBOX_URL: str = "https://sandbox.sslcommerz.com"
    SSLCOMMERZ_LIVE_URL: str = "https://securepay.sslcommerz.com"
    SSLCOMMERZ_TIMEOUT_SECONDS: float = 15.0
    SSLCOMMERZ_VALIDATE_IPN: bool = True
    SSLCOMMERZ_SUCCESS_URL: str = "http://localhost:3000/payment/success"
    SSLCOMMERZ_FAIL_URL: str = "http://localhost:3000/payment/fail"
    SSLCOMMERZ_CANCEL_URL: str = "http://localhost:3000/payment/cancel"
    SSLCOMMERZ_IPN_URL: Optional[str] = None
    PAYMENT_CURRENCY: str = "BDT"

    @property
    def sslcommerz_base_url(self) -> str:
        if self.SSLCOMMERZ_ENVIRONMENT == "live":
            return self.SSLCOMMERZ_LIVE_URL
        return self.SSLCOMMERZ_SANDBOX_URL

    class Config:
        env_file = ".env"

settings = Settings()
