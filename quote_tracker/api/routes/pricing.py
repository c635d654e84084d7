"""
Pricing API routes.
"""

from fastapi import APIRouter, HTTPException, status

from quote_tracker.api.dependencies import PricingDep
from quote_tracker.models.quote import ServiceType
from quote_tracker.schemas import (
    CatalogPriceResponse,
    CatalogPricingRequest,
    PriceEstimateResponse,
    PricingRequest,
)
from quote_tracker.services.quotes import price_calculator

router = APIRouter()


@router.post("/calculate", response_model=PriceEstimateResponse)
async def calculate_price(request: PricingRequest, pricing: PricingDep):
    """Feature-breakdown estimate, as shown on the quote form."""
    estimate = pricing.estimate(
        request.service_type,
        request.features,
        request.custom_requirements,
    )
    return PriceEstimateResponse(
        **estimate.to_dict(),
        additional_cost=estimate.additional_cost,
        priority=pricing.priority(estimate.total),
    )


@router.post("/catalog", response_model=CatalogPriceResponse)
async def calculate_catalog_price(request: CatalogPricingRequest):
    """Plan catalog price with urgency and discount applied."""
    price = price_calculator.calculate_quote_price(
        request.service_type,
        request.features,
        request.urgency,
        request.discount,
    )
    return CatalogPriceResponse(
        base_price=price.base_price,
        features_price=price.features_price,
        total_price=price.total_price,
        service={"name": price.service.name, "price": price.service.price},
        features=[{"name": item.name, "price": item.price} for item in price.features],
        development_days=price_calculator.development_time(request.service_type, request.features),
        breakdown_text=price_calculator.quote_breakdown_text(price),
    )


@router.get("/features/{service_type}")
async def list_features(service_type: str, pricing: PricingDep):
    """Features offered for a service, with catalog costs and price range."""
    service = ServiceType.__members__.get(service_type.upper())
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown service type: {service_type}",
        )
    
    low, high = price_calculator.price_range(service)
    return {
        "service_type": service.value,
        "base_price": pricing.base_price(service),
        "features": [
            {
                "key": key,
                "name": pricing.catalog[key].name,
                "cost": pricing.feature_cost(key),
            }
            for key in pricing.available_features(service)
        ],
        "recommended": price_calculator.recommended_features(service),
        "price_range": {"min": low, "max": high},
    }
