"""
Pricing engine for quote estimates.

Pure functions over read-only tables: base prices per service, a keyed
feature catalog, per-service feature multipliers, the complexity bonus for
long custom requirements, contextual disclaimers and the price-derived
priority. Nothing here touches the store.
"""

from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from quote_tracker.models.quote import QuotePriority, ServiceType
from quote_tracker.utils.errors import Err, Ok, PricingError, Result
from quote_tracker.utils.formatting import round_half_up

CURRENCY = "ARS"

# Complexity bonus: 15% of the base price once free text passes 100 chars
COMPLEXITY_THRESHOLD_CHARS = 100
COMPLEXITY_RATE = 0.15

# Priority bands, lower bound inclusive
HIGH_PRIORITY_PRICE = 300000
MEDIUM_PRIORITY_PRICE = 150000

# Disclaimer predicates
COMPLEX_FEATURE_COUNT = 8
ECOMMERCE_FEATURE_COUNT = 5

BASE_DISCLAIMER = (
    "Este es un precio estimado. El costo final puede variar según los "
    "requerimientos específicos del proyecto."
)
COMPLEX_DISCLAIMER = (
    f"{BASE_DISCLAIMER} Debido a la complejidad del proyecto, recomendamos una "
    "consulta personalizada para obtener una cotización más precisa."
)
ECOMMERCE_DISCLAIMER = (
    f"{BASE_DISCLAIMER} Los proyectos de e-commerce requieren análisis detallado "
    "de integraciones y funcionalidades específicas."
)


@dataclass(frozen=True)
class FeatureSpec:
    """Catalog entry for an add-on feature."""
    key: str
    name: str
    cost: int


@dataclass(frozen=True)
class FeatureCost:
    """A priced feature as it appears in an estimate."""
    key: str
    name: str
    cost: int


@dataclass
class PriceEstimate:
    """Result of a feature-breakdown estimate."""
    base_price: int
    feature_breakdown: list[FeatureCost]
    complexity_bonus: int
    total: int
    currency: str = CURRENCY
    disclaimer: str = BASE_DISCLAIMER
    
    @property
    def additional_cost(self) -> int:
        return sum(feature.cost for feature in self.feature_breakdown)
    
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FeatureValidation:
    """Split of requested features into known and unknown for a service."""
    valid: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)
    
    @property
    def is_valid(self) -> bool:
        return not self.invalid


def _catalog(*specs: FeatureSpec) -> Mapping[str, FeatureSpec]:
    return MappingProxyType({spec.key: spec for spec in specs})


BASE_PRICES: Mapping[ServiceType, int] = MappingProxyType({
    ServiceType.LANDING_PAGE: 170000,
    ServiceType.CORPORATE_WEB: 250000,
    ServiceType.ECOMMERCE: 370000,
    ServiceType.SOCIAL_MEDIA: 180000,
})

# Feature costs are service-dependent through SERVICE_MULTIPLIERS
FEATURE_CATALOG: Mapping[str, FeatureSpec] = _catalog(
    # SEO and marketing
    FeatureSpec("seo-optimization", "Optimización SEO", 50000),
    FeatureSpec("google-analytics", "Google Analytics", 25000),
    FeatureSpec("social-media-integration", "Integración Redes Sociales", 35000),
    FeatureSpec("newsletter-integration", "Newsletter", 30000),
    FeatureSpec("blog-functionality", "Blog", 45000),
    # Design and UX
    FeatureSpec("responsive-design", "Diseño Responsive", 30000),
    FeatureSpec("custom-animations", "Animaciones Personalizadas", 60000),
    FeatureSpec("interactive-elements", "Elementos Interactivos", 40000),
    FeatureSpec("image-gallery", "Galería de Imágenes", 35000),
    FeatureSpec("video-integration", "Integración de Videos", 45000),
    # Functionality
    FeatureSpec("contact-forms", "Formularios de Contacto", 25000),
    FeatureSpec("live-chat", "Chat en Vivo", 40000),
    FeatureSpec("booking-system", "Sistema de Reservas", 90000),
    FeatureSpec("user-accounts", "Cuentas de Usuario", 70000),
    FeatureSpec("admin-panel", "Panel Administrativo", 100000),
    FeatureSpec("cms-integration", "Sistema de Gestión de Contenido", 80000),
    # E-commerce
    FeatureSpec("payment-gateway", "Pasarela de Pagos", 100000),
    FeatureSpec("inventory-management", "Gestión de Inventario", 150000),
    FeatureSpec("shopping-cart", "Carrito de Compras", 80000),
    FeatureSpec("product-catalog", "Catálogo de Productos", 60000),
    FeatureSpec("order-management", "Gestión de Pedidos", 120000),
    FeatureSpec("shipping-integration", "Integración de Envíos", 90000),
    # Advanced
    FeatureSpec("multilingual", "Sitio Multiidioma", 60000),
    FeatureSpec("api-integration", "Integración con APIs", 80000),
    FeatureSpec("custom-database", "Base de Datos Personalizada", 120000),
    FeatureSpec("third-party-integrations", "Integraciones Terceros", 70000),
    FeatureSpec("advanced-security", "Seguridad Avanzada", 90000),
    FeatureSpec("performance-optimization", "Optimización de Performance", 50000),
)

SERVICE_MULTIPLIERS: Mapping[ServiceType, float] = MappingProxyType({
    ServiceType.LANDING_PAGE: 0.8,
    ServiceType.CORPORATE_WEB: 1.0,
    ServiceType.ECOMMERCE: 1.3,
    ServiceType.SOCIAL_MEDIA: 0.9,
})

_COMMON_FEATURES = (
    "seo-optimization",
    "google-analytics",
    "responsive-design",
    "contact-forms",
    "multilingual",
    "advanced-security",
    "performance-optimization",
)

AVAILABLE_FEATURES: Mapping[ServiceType, tuple[str, ...]] = MappingProxyType({
    ServiceType.LANDING_PAGE: _COMMON_FEATURES + (
        "social-media-integration",
        "newsletter-integration",
        "custom-animations",
        "interactive-elements",
        "image-gallery",
        "video-integration",
        "live-chat",
    ),
    ServiceType.CORPORATE_WEB: _COMMON_FEATURES + (
        "social-media-integration",
        "newsletter-integration",
        "blog-functionality",
        "custom-animations",
        "interactive-elements",
        "image-gallery",
        "video-integration",
        "live-chat",
        "booking-system",
        "user-accounts",
        "admin-panel",
        "cms-integration",
        "api-integration",
        "custom-database",
        "third-party-integrations",
    ),
    ServiceType.ECOMMERCE: tuple(FEATURE_CATALOG),
    ServiceType.SOCIAL_MEDIA: (
        "social-media-integration",
        "google-analytics",
        "newsletter-integration",
        "image-gallery",
        "video-integration",
        "custom-animations",
    ),
})


def coerce_service_type(service_type: ServiceType | str) -> ServiceType | None:
    """Map a raw value onto the enumeration, None when it is not a member."""
    if isinstance(service_type, ServiceType):
        return service_type
    try:
        return ServiceType(service_type)
    except ValueError:
        return None


def calculate_priority(estimated_price: float | int) -> QuotePriority:
    """
    Classify a quote by value.
    
    HIGH from 300000, MEDIUM from 150000, LOW below that.
    """
    if estimated_price >= HIGH_PRIORITY_PRICE:
        return QuotePriority.HIGH
    if estimated_price >= MEDIUM_PRIORITY_PRICE:
        return QuotePriority.MEDIUM
    return QuotePriority.LOW


def select_disclaimer(
    service_type: ServiceType | str,
    feature_count: int,
    has_custom_requirements: bool,
) -> str:
    """Pick the disclaimer variant for the request's shape."""
    if feature_count > COMPLEX_FEATURE_COUNT or has_custom_requirements:
        return COMPLEX_DISCLAIMER
    if coerce_service_type(service_type) is ServiceType.ECOMMERCE and feature_count > ECOMMERCE_FEATURE_COUNT:
        return ECOMMERCE_DISCLAIMER
    return BASE_DISCLAIMER


class PricingEngine:
    """
    Feature-breakdown price estimates.
    
    Stateless; the tables are injected so alternative catalogs can be
    priced without touching module state.
    """
    
    def __init__(
        self,
        base_prices: Mapping[ServiceType, int] = BASE_PRICES,
        catalog: Mapping[str, FeatureSpec] = FEATURE_CATALOG,
        multipliers: Mapping[ServiceType, float] = SERVICE_MULTIPLIERS,
        available: Mapping[ServiceType, tuple[str, ...]] = AVAILABLE_FEATURES,
    ):
        self.base_prices = base_prices
        self.catalog = catalog
        self.multipliers = multipliers
        self.available = available
    
    def base_price(self, service_type: ServiceType | str) -> int:
        """Base price for a service; 0 for values outside the enumeration."""
        service = coerce_service_type(service_type)
        if service is None:
            return 0
        return self.base_prices.get(service, 0)
    
    def feature_cost(self, feature_id: str) -> int:
        """Catalog cost before any service multiplier; 0 when unknown."""
        spec = self.catalog.get(feature_id)
        return spec.cost if spec else 0
    
    def multiplier(self, service_type: ServiceType | str) -> float:
        service = coerce_service_type(service_type)
        if service is None:
            return 1.0
        return self.multipliers.get(service, 1.0)
    
    def estimate(
        self,
        service_type: ServiceType | str,
        features: Iterable[str] = (),
        custom_requirements: str | None = None,
        service_multiplier: float | None = None,
    ) -> PriceEstimate:
        """
        Price a request.
        
        Each known feature costs `round(cost * multiplier)`; unknown features
        cost nothing and are left out of the breakdown. A complexity bonus of
        15% of the base price applies when the custom requirements run past
        100 characters.
        
        Args:
            service_type: Requested service
            features: Feature keys, in request order
            custom_requirements: Free-text requirements, if any
            service_multiplier: Override for the service's feature multiplier
            
        Returns:
            PriceEstimate where total == base + sum(breakdown) + bonus
        """
        features = list(features)
        base_price = self.base_price(service_type)
        multiplier = (
            service_multiplier if service_multiplier is not None
            else self.multiplier(service_type)
        )
        
        breakdown: list[FeatureCost] = []
        for key in features:
            spec = self.catalog.get(key)
            if spec is None:
                continue
            cost = round_half_up(spec.cost * multiplier)
            if cost > 0:
                breakdown.append(FeatureCost(key=key, name=spec.name, cost=cost))
        
        complexity_bonus = 0
        if custom_requirements and len(custom_requirements) > COMPLEXITY_THRESHOLD_CHARS:
            complexity_bonus = round_half_up(base_price * COMPLEXITY_RATE)
        
        total = base_price + sum(item.cost for item in breakdown) + complexity_bonus
        
        return PriceEstimate(
            base_price=base_price,
            feature_breakdown=breakdown,
            complexity_bonus=complexity_bonus,
            total=total,
            disclaimer=select_disclaimer(
                service_type,
                len(features),
                bool(custom_requirements),
            ),
        )
    
    def priority(self, estimated_price: float | int) -> QuotePriority:
        return calculate_priority(estimated_price)
    
    def available_features(self, service_type: ServiceType | str) -> list[str]:
        service = coerce_service_type(service_type)
        if service is None:
            return []
        return list(self.available.get(service, ()))
    
    def validate_features(
        self,
        service_type: ServiceType | str,
        features: Iterable[str],
    ) -> FeatureValidation:
        """Split features into those offered for the service and the rest."""
        allowed = set(self.available_features(service_type))
        result = FeatureValidation()
        for feature in features:
            (result.valid if feature in allowed else result.invalid).append(feature)
        return result
    
    def checked_estimate(
        self,
        service_type: ServiceType | str,
        features: Iterable[str] = (),
        custom_requirements: str | None = None,
    ) -> Result[PriceEstimate]:
        """
        Estimate that refuses unknown services and unavailable features.
        
        Returns Err(PricingError) instead of silently pricing them at 0.
        """
        features = list(features)
        if coerce_service_type(service_type) is None:
            return Err(PricingError(
                f"Unknown service type: {service_type}",
                field="service_type",
                detail={"service_type": str(service_type)},
            ))
        
        validation = self.validate_features(service_type, features)
        if not validation.is_valid:
            return Err(PricingError(
                "Features not available for this service",
                field="features",
                detail={"invalid_features": validation.invalid},
            ))
        
        return Ok(self.estimate(service_type, features, custom_requirements))
