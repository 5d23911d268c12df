"""
Catalog Module for Sirened

Rules for books entering the catalog:
- Multi-step upload wizard validation
- Referral link enhancement (retailer domain, favicon)
"""

from sirened.catalog.upload_wizard import (
    BOOK_FORMATS,
    WIZARD_STEPS,
    WizardStep,
    step_errors,
    can_proceed,
    can_skip_to,
    submission_errors,
    validate_submission,
)
from sirened.catalog.referral_links import (
    RETAILERS,
    normalize_retailer,
    extract_domain,
    favicon_url,
    enhance_referral_link,
    enhance_referral_links,
)

__all__ = [
    # Upload wizard
    "BOOK_FORMATS",
    "WIZARD_STEPS",
    "WizardStep",
    "step_errors",
    "can_proceed",
    "can_skip_to",
    "submission_errors",
    "validate_submission",
    # Referral links
    "RETAILERS",
    "normalize_retailer",
    "extract_domain",
    "favicon_url",
    "enhance_referral_link",
    "enhance_referral_links",
]
