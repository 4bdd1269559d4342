"""
Intake form validation — coerces, bounds-checks and normalizes the raw JSON body.

validate_form() is the only entry point routes use: it returns either a LeadForm
or a field → [messages] dict suitable for a 400 response.
"""
import re
from typing import Dict, List, Optional, Tuple, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator

from app.diagnostic.engine import StoreMetrics

_DOMAIN_RE = re.compile(r'^[a-zA-Z0-9][a-zA-Z0-9-]*(\.[a-zA-Z0-9-]+)+')


def normalize_store_url(url: str) -> str:
    """'HTTP://www.MyStore.com/' → 'https://mystore.com'."""
    normalized = url.strip().lower()
    normalized = re.sub(r'^https?://', '', normalized)
    normalized = re.sub(r'/+$', '', normalized)
    normalized = re.sub(r'^www\.', '', normalized)
    return f'https://{normalized}'


class LeadForm(BaseModel):
    """Diagnostic form body. Accepts the form's camelCase keys or snake_case."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, frozen=True)

    first_name: str = Field(..., alias='firstName', min_length=1, max_length=100)
    email: EmailStr
    store_url: str = Field(..., alias='storeUrl', min_length=1, max_length=500)
    monthly_revenue_range: Optional[Literal['under-50k', '50k-150k', '150k-500k', '500k-plus']] = Field(
        None, alias='monthlyRevenueRange',
    )

    sessions_30d: int = Field(..., alias='sessions30d', ge=0, le=100_000_000)
    orders_30d: int = Field(..., alias='orders30d', ge=0, le=10_000_000)
    conversion_rate: float = Field(..., alias='conversionRate', ge=0, le=20, allow_inf_nan=False)
    aov: float = Field(..., ge=0, le=5000, allow_inf_nan=False)
    abandoned_carts_30d: int = Field(..., alias='abandonedCarts30d', ge=0, le=100_000_000)

    @field_validator('email', mode='wrap')
    @classmethod
    def validate_email(cls, v, handler) -> str:
        try:
            email = handler(v.strip() if isinstance(v, str) else v)
        except ValidationError:
            raise ValueError('Please enter a valid email address') from None
        return email.lower()

    @field_validator('store_url')
    @classmethod
    def validate_store_url(cls, v: str) -> str:
        cleaned = re.sub(r'^https?://', '', v, flags=re.IGNORECASE)
        cleaned = re.sub(r'^www\.', '', cleaned, flags=re.IGNORECASE)
        if not _DOMAIN_RE.match(cleaned):
            raise ValueError('Please enter a valid store URL (e.g., mystore.com or mystore.myshopify.com)')
        return normalize_store_url(v)

    @field_validator('monthly_revenue_range', mode='before')
    @classmethod
    def blank_range_is_none(cls, v):
        return v or None

    def to_metrics(self) -> StoreMetrics:
        return StoreMetrics(
            sessions_30d=self.sessions_30d,
            orders_30d=self.orders_30d,
            conversion_rate=self.conversion_rate,
            aov=self.aov,
            abandoned_carts_30d=self.abandoned_carts_30d,
        )


_FIELD_BY_ALIAS = {
    f.alias: name for name, f in LeadForm.model_fields.items() if f.alias
}


def _error_message(err) -> str:
    if err.get('type') == 'value_error' and err.get('ctx', {}).get('error'):
        return str(err['ctx']['error'])
    return err.get('msg', 'Invalid value')


def validate_form(payload) -> Tuple[Optional[LeadForm], Dict[str, List[str]]]:
    """
    Validate a raw request body.

    Returns (form, {}) on success, (None, {field: [messages]}) on failure.
    Field names in the error dict are always snake_case.
    """
    if not isinstance(payload, dict):
        return None, {'_body': ['Request body must be a JSON object']}

    try:
        return LeadForm.model_validate(payload), {}
    except ValidationError as e:
        errors: Dict[str, List[str]] = {}
        for err in e.errors():
            loc = err.get('loc') or ('_body',)
            field = _FIELD_BY_ALIAS.get(loc[0], loc[0])
            errors.setdefault(str(field), []).append(_error_message(err))
        return None, errors
