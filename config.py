from pydantic import PrivateAttr, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Loan Intake API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./loan_intake.db"
    cors_origins: str = "http://localhost:3000,https://kopesha.vercel.app"

    # M-Pesa Daraja (STK push)
    mpesa_base_url: str = "https://api.safaricom.co.ke"
    mpesa_consumer_key: str = ""
    mpesa_consumer_secret: str = ""
    mpesa_shortcode: str = ""
    mpesa_passkey: str = ""
    mpesa_callback_url: str = ""
    mpesa_timeout_seconds: float = 30.0
    mpesa_account_reference: str = "Loan Verification"
    mpesa_transaction_desc: str = "Verification Payment"

    # Synthetic loan terms, inclusive bounds
    loan_amount_min: int = 10_000
    loan_amount_max: int = 23_000
    verification_fee_min: int = 186
    verification_fee_max: int = 199

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    _is_sqlite: bool = PrivateAttr(default=False)

    @model_validator(mode="after")
    def _check_ranges(self) -> "Settings":
        if self.loan_amount_min > self.loan_amount_max:
            raise ValueError("loan_amount_min must not exceed loan_amount_max")
        if self.verification_fee_min > self.verification_fee_max:
            raise ValueError("verification_fee_min must not exceed verification_fee_max")
        return self

    def model_post_init(self, __context: object) -> None:
        _scheme = self.database_url.split(":")[0].lower()
        object.__setattr__(self, "_is_sqlite", "sqlite" in _scheme)

    @property
    def is_sqlite(self) -> bool:
        return self._is_sqlite


settings = Settings()
