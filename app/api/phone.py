"""
app/api/phone.py

Purpose: Phone input support for the UI

- Live normalization of what the user is typing
- Supported countries for the country picker
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_context
from app.context import AppContext
from app.schemas.requests import PhoneNormalizeRequest
from app.schemas.response import CountryListResponse, CountryResponse, PhoneNormalizeResponse
from utils.phone_rules import supported_countries
from utils.validation_utils import normalize_phone

router = APIRouter(prefix="/phone")


@router.post("/normalize", response_model=PhoneNormalizeResponse)
async def normalize(body: PhoneNormalizeRequest, context: AppContext = Depends(get_context)):
    country = body.country_code or context.config.DEFAULT_COUNTRY
    result = normalize_phone(body.phone, country)
    return PhoneNormalizeResponse(
        valid=result.valid,
        canonical=result.canonical,
        error_kind=result.error_kind.value if result.error_kind else None,
        message=result.message,
        display_message=result.display_message,
        country_code=result.country_code,
    )


@router.get("/countries", response_model=CountryListResponse)
async def list_countries(context: AppContext = Depends(get_context)):
    return CountryListResponse(
        default_country=context.config.DEFAULT_COUNTRY,
        countries=[
            CountryResponse(
                country_code=rule.country_code,
                name=rule.name,
                calling_code=rule.calling_code,
                min_length=rule.min_length,
                max_length=rule.max_length,
                format_hint=rule.format_hint,
                popular=rule.popular,
            )
            for rule in supported_countries()
        ],
    )
