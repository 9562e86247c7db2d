"""
conftest.py — Shared pytest fixtures for the treatment pricing test suite.

No database or external service fixtures are defined here.  All tests in this
suite are pure unit tests that exercise the pricing engines in isolation.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``treatment_pricing.*`` imports resolve correctly regardless of where
    pytest is invoked (installed or not).
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any package imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def pricing_engine():
    """TreatmentPricingEngine with default blind hems (all 0 cm)."""
    from treatment_pricing.services.treatment_engine import TreatmentPricingEngine
    return TreatmentPricingEngine()


@pytest.fixture(scope="session")
def labor_engine():
    """LaborEngine with default constants (0.5h setup, 0.4h/m, moderate ×1.25)."""
    from treatment_pricing.services.labor_engine import LaborEngine
    return LaborEngine()


@pytest.fixture(scope="session")
def accessory_engine():
    """AccessoryEngine with the shipped DEFAULT_ACCESSORY_FORMULAS table."""
    from treatment_pricing.services.accessory_engine import AccessoryEngine
    return AccessoryEngine()


@pytest.fixture(scope="session")
def options_engine():
    from treatment_pricing.services.options_engine import OptionsEngine
    return OptionsEngine()


# ---------------------------------------------------------------------------
# Shared sample records
# ---------------------------------------------------------------------------

@pytest.fixture
def curtain_template():
    """
    Pencil-pleat curtain template, made as a pair:
      fullness 2.5, side hems 5 cm, header 8 cm, bottom 10 cm, waste 5%,
      priced per linear metre.
    """
    return {
        "id": "tpl-curtain",
        "name": "Pencil Pleat Curtains",
        "treatment_category": "curtains",
        "pricing_type": "per_metre",
        "panel_configuration": "pair",
        "fullness_ratio": 2.5,
        "side_hems": 5,
        "header_allowance": 8,
        "bottom_hem": 10,
        "waste_percent": 5,
    }


@pytest.fixture
def curtain_fabric():
    """137 cm plain fabric at 20.00 per metre (cost price)."""
    return {
        "id": "fab-1",
        "name": "Linen Natural",
        "category": "fabric",
        "cost_price": 20.0,
        "selling_price": 32.0,
        "fabric_width_cm": 137,
    }


@pytest.fixture
def curtain_measurements():
    """200 cm rail, 220 cm drop."""
    return {"rail_width": 200, "drop": 220}


@pytest.fixture
def blind_template():
    """Roller blind priced per sqm with explicit hems (8 cm header, 10 cm bottom, no sides)."""
    return {
        "id": "tpl-roller",
        "name": "Roller Blind",
        "treatment_category": "roller_blinds",
        "blind_header_hem_cm": 8,
        "blind_bottom_hem_cm": 10,
        "blind_side_hem_cm": 0,
    }


@pytest.fixture
def sample_grid():
    """
    Standard-shape grid, widths {100, 150, 200} × drops {120, 180, 240}.

    price = width + drop (so each cell is easy to recognise in assertions).
    """
    widths = [100, 150, 200]
    drops = [120, 180, 240]
    return {
        "widthColumns": widths,
        "dropRows": [{"drop": d, "prices": [w + d for w in widths]} for d in drops],
        "unit": "cm",
    }
