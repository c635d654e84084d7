"""
Catalog price calculator with urgency and discount modifiers.

Independent from the feature-breakdown estimate: it prices against the
published plan catalog (social media starts at the entry plan) and applies
`round(subtotal * urgency * (1 - discount))`.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

from quote_tracker.models.quote import ServiceType
from quote_tracker.services.quotes.pricing_service import FeatureSpec, coerce_service_type
from quote_tracker.utils.errors import PricingError
from quote_tracker.utils.formatting import format_price, round_half_up


class Urgency(str, Enum):
    """Delivery urgency; the multiplier applies to the whole subtotal."""
    NORMAL = "normal"            # more than 30 days
    URGENT = "urgent"            # 15-30 days
    VERY_URGENT = "very-urgent"  # under 15 days
    
    @property
    def multiplier(self) -> float:
        return URGENCY_MULTIPLIERS[self]


class Discount(str, Enum):
    """Client-type discounts, as fractional reductions."""
    RETURNING_CLIENT = "returning-client"
    REFERRAL = "referral"
    STUDENT = "student"
    NON_PROFIT = "non-profit"
    
    @property
    def rate(self) -> float:
        return DISCOUNT_RATES[self]


URGENCY_MULTIPLIERS: Mapping[Urgency, float] = MappingProxyType({
    Urgency.NORMAL: 1.0,
    Urgency.URGENT: 1.25,
    Urgency.VERY_URGENT: 1.5,
})

DISCOUNT_RATES: Mapping[Discount, float] = MappingProxyType({
    Discount.RETURNING_CLIENT: 0.10,
    Discount.REFERRAL: 0.05,
    Discount.STUDENT: 0.15,
    Discount.NON_PROFIT: 0.20,
})

SERVICE_NAMES: Mapping[ServiceType, str] = MappingProxyType({
    ServiceType.LANDING_PAGE: "Landing Page",
    ServiceType.CORPORATE_WEB: "Web Corporativa",
    ServiceType.ECOMMERCE: "Tienda Online",
    ServiceType.SOCIAL_MEDIA: "Gestión de Redes Sociales",
})

CATALOG_BASE_PRICES: Mapping[ServiceType, int] = MappingProxyType({
    ServiceType.LANDING_PAGE: 170000,
    ServiceType.CORPORATE_WEB: 250000,
    ServiceType.ECOMMERCE: 370000,
    ServiceType.SOCIAL_MEDIA: 85000,
})

ADDITIONAL_FEATURES: Mapping[str, FeatureSpec] = MappingProxyType({
    spec.key: spec for spec in (
        # Common
        FeatureSpec("advanced-seo", "SEO Avanzado", 45000),
        FeatureSpec("analytics", "Google Analytics", 15000),
        FeatureSpec("live-chat", "Chat Online", 25000),
        FeatureSpec("advanced-forms", "Formularios Avanzados", 20000),
        FeatureSpec("multilanguage", "Sitio Multiidioma", 80000),
        FeatureSpec("ssl-certificate", "Certificado SSL", 12000),
        # Landing page
        FeatureSpec("promo-popup", "Popup Promocional", 18000),
        FeatureSpec("countdown-timer", "Contador Regresivo", 15000),
        # Corporate web
        FeatureSpec("blog", "Blog Integrado", 35000),
        FeatureSpec("image-gallery", "Galería de Imágenes", 22000),
        FeatureSpec("testimonials", "Sección de Testimonios", 18000),
        FeatureSpec("team-page", "Página de Equipo", 25000),
        # E-commerce
        FeatureSpec("payment-gateway", "Pasarela de Pagos", 60000),
        FeatureSpec("advanced-inventory", "Gestión de Inventario", 45000),
        FeatureSpec("discount-coupons", "Sistema de Cupones", 35000),
        FeatureSpec("wishlist", "Lista de Deseos", 28000),
        FeatureSpec("product-comparison", "Comparador de Productos", 40000),
        FeatureSpec("product-reviews", "Reseñas de Productos", 30000),
        # Social media
        FeatureSpec("premium-content", "Contenido Premium", 25000),
        FeatureSpec("featured-stories", "Stories Destacadas", 15000),
        FeatureSpec("ad-campaigns", "Campañas Publicitarias", 50000),
        FeatureSpec("influencer-marketing", "Marketing de Influencers", 40000),
    )
})

RECOMMENDED_FEATURES: Mapping[ServiceType, tuple[str, ...]] = MappingProxyType({
    ServiceType.LANDING_PAGE: ("advanced-seo", "analytics", "promo-popup", "ssl-certificate"),
    ServiceType.CORPORATE_WEB: ("advanced-seo", "analytics", "blog", "testimonials", "ssl-certificate"),
    ServiceType.ECOMMERCE: ("payment-gateway", "advanced-inventory", "product-reviews", "ssl-certificate", "analytics"),
    ServiceType.SOCIAL_MEDIA: ("premium-content", "featured-stories", "analytics"),
})

INCOMPATIBLE_FEATURES: Mapping[ServiceType, frozenset[str]] = MappingProxyType({
    ServiceType.LANDING_PAGE: frozenset({"payment-gateway", "advanced-inventory", "wishlist", "product-comparison"}),
    ServiceType.CORPORATE_WEB: frozenset({"payment-gateway", "advanced-inventory", "wishlist"}),
    ServiceType.ECOMMERCE: frozenset({"ad-campaigns", "influencer-marketing"}),
    ServiceType.SOCIAL_MEDIA: frozenset({"payment-gateway", "advanced-inventory", "blog"}),
})

# Working days
BASE_DEVELOPMENT_DAYS: Mapping[ServiceType, tuple[int, int]] = MappingProxyType({
    ServiceType.LANDING_PAGE: (7, 14),
    ServiceType.CORPORATE_WEB: (14, 21),
    ServiceType.ECOMMERCE: (21, 35),
    ServiceType.SOCIAL_MEDIA: (3, 7),
})

FEATURE_DEVELOPMENT_DAYS: Mapping[str, int] = MappingProxyType({
    "advanced-seo": 2,
    "analytics": 1,
    "live-chat": 1,
    "multilanguage": 7,
    "blog": 5,
    "payment-gateway": 5,
    "advanced-inventory": 3,
    "discount-coupons": 3,
})
DEFAULT_FEATURE_DAYS = 1

MAX_RANGE_FEATURES = 8


@dataclass(frozen=True)
class LineAmount:
    name: str
    price: int


@dataclass
class CatalogPrice:
    """Result of the catalog calculator."""
    base_price: int
    features_price: int
    total_price: int
    service: LineAmount
    features: list[LineAmount] = field(default_factory=list)


def _require_service(service_type: ServiceType | str) -> ServiceType:
    service = coerce_service_type(service_type)
    if service is None:
        raise PricingError(
            f"Unknown service type: {service_type}",
            field="service_type",
            detail={"allowed": [s.value for s in ServiceType]},
        )
    return service


def calculate_quote_price(
    service_type: ServiceType | str,
    features: Iterable[str] = (),
    urgency: Urgency | str = Urgency.NORMAL,
    discount: Discount | str | None = None,
) -> CatalogPrice:
    """
    Price a request against the plan catalog.
    
    Args:
        service_type: Requested service
        features: Catalog feature keys; unknown keys cost 0 and are omitted
        urgency: Delivery urgency
        discount: Optional client discount
        
    Returns:
        CatalogPrice with total = round(subtotal * urgency * (1 - discount))
    """
    service = _require_service(service_type)
    urgency = Urgency(urgency)
    discount = Discount(discount) if discount else None
    
    base_price = CATALOG_BASE_PRICES[service]
    priced = [ADDITIONAL_FEATURES[key] for key in features if key in ADDITIONAL_FEATURES]
    features_price = sum(spec.cost for spec in priced)
    
    subtotal = base_price + features_price
    discount_rate = discount.rate if discount else 0.0
    total = round_half_up(subtotal * urgency.multiplier * (1 - discount_rate))
    
    return CatalogPrice(
        base_price=base_price,
        features_price=features_price,
        total_price=total,
        service=LineAmount(SERVICE_NAMES[service], base_price),
        features=[LineAmount(spec.name, spec.cost) for spec in priced if spec.cost > 0],
    )


def recommended_features(service_type: ServiceType | str) -> list[str]:
    service = coerce_service_type(service_type)
    return list(RECOMMENDED_FEATURES.get(service, ())) if service else []


def is_feature_compatible(service_type: ServiceType | str, feature_key: str) -> bool:
    service = coerce_service_type(service_type)
    if service is None:
        return False
    return feature_key not in INCOMPATIBLE_FEATURES.get(service, frozenset())


def price_range(service_type: ServiceType | str) -> tuple[int, int]:
    """
    Indicative (min, max) for a service.
    
    Min adds the first two recommended features; max adds up to eight
    compatible catalog features at the highest urgency.
    """
    service = _require_service(service_type)
    base_price = CATALOG_BASE_PRICES[service]
    
    min_features = sum(
        ADDITIONAL_FEATURES[key].cost for key in recommended_features(service)[:2]
    )
    compatible = [
        spec for key, spec in ADDITIONAL_FEATURES.items()
        if is_feature_compatible(service, key)
    ][:MAX_RANGE_FEATURES]
    max_features = sum(spec.cost for spec in compatible)
    
    return (
        round_half_up(base_price + min_features),
        round_half_up((base_price + max_features) * Urgency.VERY_URGENT.multiplier),
    )


def development_time(service_type: ServiceType | str, features: Iterable[str] = ()) -> tuple[int, int]:
    """Estimated working days as (min, max)."""
    service = _require_service(service_type)
    base_min, base_max = BASE_DEVELOPMENT_DAYS[service]
    extra = sum(FEATURE_DEVELOPMENT_DAYS.get(key, DEFAULT_FEATURE_DAYS) for key in features)
    return base_min + int(extra * 0.7), base_max + extra


def quote_breakdown_text(price: CatalogPrice) -> str:
    """Plain-text breakdown for emails and admin notes."""
    lines = [f"Servicio Base: {price.service.name} - {format_price(price.service.price)}"]
    if price.features:
        lines.append("")
        lines.append("Características Adicionales:")
        lines.extend(f"• {item.name} - {format_price(item.price)}" for item in price.features)
    lines.append("")
    lines.append(f"Total: {format_price(price.total_price)}")
    return "\n".join(lines)
