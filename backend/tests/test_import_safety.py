"""
test_import_safety.py — Import and circular-import checks.

Verifies that:
  1. Every service module and the schema module import cleanly in isolation.
  2. The public package surface exposes the documented entry points.
  3. Low-level modules stay independent of the orchestrator (no cycles).
  4. No module hands formula text to eval/exec.
  5. Configuration tables are complete and consistent.

No database, network, or external services are required.
"""

import importlib
import inspect
import re

import pytest


_SERVICE_MODULES = [
    "treatment_pricing.config",
    "treatment_pricing.services.errors",
    "treatment_pricing.services.field_resolver",
    "treatment_pricing.services.treatment_category",
    "treatment_pricing.services.expression_engine",
    "treatment_pricing.services.pricing_grid",
    "treatment_pricing.services.pricing_methods",
    "treatment_pricing.services.fabric_engine",
    "treatment_pricing.services.labor_engine",
    "treatment_pricing.services.accessory_engine",
    "treatment_pricing.services.options_engine",
    "treatment_pricing.services.treatment_engine",
    "treatment_pricing.services.logging_config",
    "treatment_pricing.models.schemas",
]

_PUBLIC_API = [
    "calculate_treatment_pricing",
    "TreatmentPricingEngine",
    "calculate_blind_sqm",
    "calculate_fabric_usage",
    "calculate_wallpaper_usage",
    "calculate_hardware_accessories",
    "get_price_from_grid",
    "calculate_labor",
    "calculate_price",
    "resolve_pricing_method",
    "evaluate",
    "InvalidDimensionError",
    "InvalidExpressionError",
    "UnknownVariableError",
    "DivisionByZeroError",
]

_EVAL_CALL = re.compile(r"(?<![\w.])(eval|exec|compile)\s*\(")


class TestServiceModuleImports:
    """All modules must import without circular import errors."""

    @pytest.mark.parametrize("module_path", _SERVICE_MODULES)
    def test_module_imports(self, module_path):
        try:
            mod = importlib.import_module(module_path)
            assert mod is not None, f"Module {module_path} is None after import"
        except ImportError as e:
            pytest.fail(f"{module_path} raised ImportError: {e}")

    @pytest.mark.parametrize("name", _PUBLIC_API)
    def test_public_api(self, name):
        import treatment_pricing
        assert hasattr(treatment_pricing, name), f"treatment_pricing.{name} is not exported"
        assert name in treatment_pricing.__all__


class TestNoCyclicImports:
    """Low-level engines must not reach up into the orchestrator."""

    @pytest.mark.parametrize("module_path", [
        "treatment_pricing.services.field_resolver",
        "treatment_pricing.services.expression_engine",
        "treatment_pricing.services.pricing_grid",
        "treatment_pricing.services.fabric_engine",
        "treatment_pricing.services.labor_engine",
    ])
    def test_engine_does_not_import_orchestrator(self, module_path):
        src = inspect.getsource(importlib.import_module(module_path))
        assert "treatment_engine" not in src, f"{module_path} imports treatment_engine (circular risk)"

    def test_fabric_engine_does_not_import_schemas(self):
        """schemas imports fabric_engine's result types, so the reverse would be a cycle."""
        import treatment_pricing.services.fabric_engine as fe
        assert "models.schemas" not in inspect.getsource(fe)


class TestNoDynamicEvaluation:

    @pytest.mark.parametrize("module_path", _SERVICE_MODULES)
    def test_no_eval_exec_compile(self, module_path):
        src = inspect.getsource(importlib.import_module(module_path))
        assert not _EVAL_CALL.search(src), f"{module_path} calls eval/exec/compile"


class TestConfigurationTables:

    def test_default_pricing_type_for_every_category(self):
        from treatment_pricing import config
        for category, _ in config.CATEGORY_KEYWORDS:
            assert category in config.DEFAULT_PRICING_TYPE

    def test_blind_default_is_per_sqm(self):
        from treatment_pricing.config import DEFAULT_PRICING_TYPE
        assert DEFAULT_PRICING_TYPE["blind"] == "per-sqm"

    def test_blind_hem_defaults_are_zero(self):
        """Externally-synced templates with no hems must not pick up invented allowances."""
        from treatment_pricing.config import BLIND_HEM_DEFAULTS
        assert set(BLIND_HEM_DEFAULTS.values()) == {0.0}

    def test_default_accessory_formulas_evaluate(self):
        from treatment_pricing.config import DEFAULT_ACCESSORY_FORMULAS
        from treatment_pricing.services.expression_engine import evaluate
        for key, entry in DEFAULT_ACCESSORY_FORMULAS.items():
            value = evaluate(entry["formula"], {"rail_width_cm": 300, "fullness": 2.0})
            assert value >= 0, f"DEFAULT_ACCESSORY_FORMULAS['{key}'] evaluated to {value}"
            assert entry["description"]
