"""
Tests for the feature-breakdown pricing engine.
"""

from types import MappingProxyType

import pytest

from quote_tracker.models.quote import QuotePriority, ServiceType
from quote_tracker.services.quotes.pricing_service import (
    BASE_DISCLAIMER,
    BASE_PRICES,
    COMPLEX_DISCLAIMER,
    ECOMMERCE_DISCLAIMER,
    FEATURE_CATALOG,
    FeatureSpec,
    PricingEngine,
    calculate_priority,
)
from quote_tracker.utils.errors import PricingError


@pytest.fixture
def engine():
    return PricingEngine()


class TestBasePrice:
    """Tests for base price lookup."""
    
    @pytest.mark.parametrize("service_type,expected", [
        (ServiceType.LANDING_PAGE, 170000),
        (ServiceType.CORPORATE_WEB, 250000),
        (ServiceType.ECOMMERCE, 370000),
        (ServiceType.SOCIAL_MEDIA, 180000),
    ])
    def test_documented_constants(self, engine, service_type, expected):
        assert engine.base_price(service_type) == expected
    
    def test_accepts_raw_value(self, engine):
        assert engine.base_price("ECOMMERCE") == 370000
    
    def test_unknown_service_is_zero(self, engine):
        assert engine.base_price("WORDPRESS_THEME") == 0
    
    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            BASE_PRICES[ServiceType.LANDING_PAGE] = 1


class TestFeatureCost:
    
    def test_known_feature(self, engine):
        assert engine.feature_cost("seo-optimization") == 50000
    
    def test_unknown_feature_is_zero(self, engine):
        assert engine.feature_cost("teleportation") == 0


class TestEstimate:
    """Tests for the estimate calculation."""
    
    def test_empty_feature_list_is_base_price(self, engine):
        estimate = engine.estimate(ServiceType.CORPORATE_WEB, [])
        
        assert estimate.total == 250000
        assert estimate.feature_breakdown == []
        assert estimate.complexity_bonus == 0
        assert estimate.currency == "ARS"
    
    def test_landing_page_multiplier(self, engine):
        estimate = engine.estimate(ServiceType.LANDING_PAGE, ["seo-optimization"])
        
        assert estimate.additional_cost == 40000
        assert estimate.total == 210000
        assert estimate.feature_breakdown[0].name == "Optimización SEO"
    
    def test_total_is_sum_of_parts(self, engine):
        features = ["payment-gateway", "shopping-cart", "live-chat"]
        estimate = engine.estimate(ServiceType.ECOMMERCE, features, "x" * 150)
        
        assert estimate.total == (
            estimate.base_price
            + sum(item.cost for item in estimate.feature_breakdown)
            + estimate.complexity_bonus
        )
        # 100000*1.3 + 80000*1.3 + 40000*1.3
        assert estimate.additional_cost == 130000 + 104000 + 52000
    
    def test_unknown_features_dropped_from_breakdown(self, engine):
        estimate = engine.estimate(ServiceType.LANDING_PAGE, ["unknown-x", "seo-optimization"])
        
        assert len(estimate.feature_breakdown) == 1
        assert estimate.feature_breakdown[0].key == "seo-optimization"
        assert estimate.total == 210000
    
    def test_breakdown_keeps_request_order(self, engine):
        estimate = engine.estimate(
            ServiceType.CORPORATE_WEB,
            ["live-chat", "blog-functionality", "contact-forms"],
        )
        assert [item.key for item in estimate.feature_breakdown] == [
            "live-chat", "blog-functionality", "contact-forms",
        ]
    
    def test_rounding_is_half_up(self):
        engine = PricingEngine(
            catalog=MappingProxyType({"odd": FeatureSpec("odd", "Odd", 25)}),
        )
        estimate = engine.estimate(ServiceType.SOCIAL_MEDIA, ["odd"], service_multiplier=0.5)
        assert estimate.feature_breakdown[0].cost == 13
    
    def test_multiplier_override(self, engine):
        estimate = engine.estimate(
            ServiceType.LANDING_PAGE,
            ["seo-optimization"],
            service_multiplier=1.0,
        )
        assert estimate.additional_cost == 50000
    
    def test_complexity_bonus_over_threshold(self, engine):
        estimate = engine.estimate(ServiceType.LANDING_PAGE, [], "x" * 101)
        assert estimate.complexity_bonus == 25500
        assert estimate.total == 195500
    
    def test_no_complexity_bonus_at_threshold(self, engine):
        estimate = engine.estimate(ServiceType.LANDING_PAGE, [], "x" * 100)
        assert estimate.complexity_bonus == 0
    
    def test_to_dict(self, engine):
        payload = engine.estimate(ServiceType.LANDING_PAGE, ["seo-optimization"]).to_dict()
        assert payload["feature_breakdown"][0] == {
            "key": "seo-optimization",
            "name": "Optimización SEO",
            "cost": 40000,
        }


class TestDisclaimer:
    
    def test_base(self, engine):
        estimate = engine.estimate(ServiceType.LANDING_PAGE, ["seo-optimization"])
        assert estimate.disclaimer == BASE_DISCLAIMER
        assert "precio estimado" in estimate.disclaimer
    
    def test_many_features(self, engine):
        features = list(FEATURE_CATALOG)[:9]
        assert engine.estimate(ServiceType.ECOMMERCE, features).disclaimer == COMPLEX_DISCLAIMER
    
    def test_custom_requirements(self, engine):
        estimate = engine.estimate(ServiceType.LANDING_PAGE, [], "Integración con mi ERP")
        assert estimate.disclaimer == COMPLEX_DISCLAIMER
    
    def test_large_ecommerce(self, engine):
        features = list(FEATURE_CATALOG)[:6]
        assert engine.estimate(ServiceType.ECOMMERCE, features).disclaimer == ECOMMERCE_DISCLAIMER


class TestPriority:
    """Exact band boundaries."""
    
    @pytest.mark.parametrize("price,expected", [
        (0, QuotePriority.LOW),
        (149999, QuotePriority.LOW),
        (150000, QuotePriority.MEDIUM),
        (299999, QuotePriority.MEDIUM),
        (300000, QuotePriority.HIGH),
        (1000000, QuotePriority.HIGH),
    ])
    def test_bands(self, engine, price, expected):
        assert engine.priority(price) == expected
        assert calculate_priority(price) == expected


class TestFeatureValidation:
    
    def test_available_features_for_landing(self, engine):
        available = engine.available_features(ServiceType.LANDING_PAGE)
        assert "seo-optimization" in available
        assert "payment-gateway" not in available
    
    def test_ecommerce_offers_whole_catalog(self, engine):
        assert set(engine.available_features(ServiceType.ECOMMERCE)) == set(FEATURE_CATALOG)
    
    def test_split(self, engine):
        result = engine.validate_features(
            ServiceType.SOCIAL_MEDIA,
            ["google-analytics", "payment-gateway"],
        )
        assert result.valid == ["google-analytics"]
        assert result.invalid == ["payment-gateway"]
        assert not result.is_valid
    
    def test_checked_estimate_ok(self, engine):
        result = engine.checked_estimate(ServiceType.LANDING_PAGE, ["seo-optimization"])
        assert result.ok
        assert result.value.total == 210000
    
    def test_checked_estimate_rejects_unavailable_feature(self, engine):
        result = engine.checked_estimate(ServiceType.LANDING_PAGE, ["payment-gateway"])
        
        assert not result.ok
        assert result.kind == "pricing"
        assert result.detail == {"invalid_features": ["payment-gateway"]}
        with pytest.raises(PricingError):
            result.unwrap()
    
    def test_checked_estimate_rejects_unknown_service(self, engine):
        result = engine.checked_estimate("WORDPRESS_THEME", [])
        assert not result.ok
        assert result.error.field == "service_type"
