"""
Synthetic loan terms assigned at application time: loan amount, verification fee and
the human-facing tracking code (e.g. LON-C123456L9876543).
"""
from __future__ import annotations

import random
import re
from dataclasses import dataclass, field

TRACKING_PREFIX = "LON-C"
TRACKING_SEPARATOR = "L"
TRACKING_PATTERN = re.compile(r"^LON-C\d{6}L\d{7}$")


@dataclass(frozen=True)
class LoanTermsGenerator:
    loan_amount_min: int
    loan_amount_max: int
    verification_fee_min: int
    verification_fee_max: int
    rng: random.Random = field(default_factory=random.Random)

    @classmethod
    def from_settings(cls, settings, rng: random.Random | None = None) -> "LoanTermsGenerator":
        return cls(
            loan_amount_min=settings.loan_amount_min,
            loan_amount_max=settings.loan_amount_max,
            verification_fee_min=settings.verification_fee_min,
            verification_fee_max=settings.verification_fee_max,
            rng=rng or random.Random(),
        )

    def loan_amount(self) -> int:
        return self.rng.randint(self.loan_amount_min, self.loan_amount_max)

    def verification_fee(self) -> int:
        return self.rng.randint(self.verification_fee_min, self.verification_fee_max)

    def tracking_id(self) -> str:
        first = self.rng.randint(100_000, 999_999)
        second = self.rng.randint(1_000_000, 9_999_999)
        return f"{TRACKING_PREFIX}{first:06d}{TRACKING_SEPARATOR}{second:07d}"


def is_tracking_id(value: str) -> bool:
    return bool(TRACKING_PATTERN.match(value or ""))
