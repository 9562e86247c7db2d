"""
test_treatment_engine.py — End-to-end tests for the treatment pricing orchestrator.

Tests cover:
  - Category detection
  - Curtain reference scenario (pair, 200 × 220 cm, 137 cm fabric at 20/m)
  - Lining, manufacturing, heading, options, hardware and labour components
  - Blinds per sqm and by pricing grid (all-inclusive manufacturing = 0)
  - Grid miss fallback with warning
  - Wallpaper by roll / metre, and other manufactured items
  - Configuration-gap warnings and invalid-input failures
  - Immutability, idempotence and structured logging
"""

import copy
import logging

import pytest

from treatment_pricing.models.schemas import TreatmentPricingInput, TreatmentPricingResult
from treatment_pricing.services.errors import InvalidDimensionError, UnresolvedFabricWidthError
from treatment_pricing.services.treatment_category import detect_treatment_category
from treatment_pricing.services.treatment_engine import TreatmentPricingEngine, calculate_treatment_pricing


@pytest.fixture
def curtain_request(curtain_template, curtain_fabric, curtain_measurements):
    return {
        "template": curtain_template,
        "measurements": curtain_measurements,
        "fabric_item": curtain_fabric,
    }


def _with(request, **changes):
    updated = copy.deepcopy(request)
    for key, value in changes.items():
        if key == "template_update":
            updated["template"].update(value)
        else:
            updated[key] = value
    return updated


# ===========================================================================
# Class 1: Category detection
# ===========================================================================

class TestCategoryDetection:

    @pytest.mark.parametrize("template,expected", [
        ({"treatment_category": "roller_blinds"}, "blind"),
        ({"category": "Roman Shade"}, "blind"),
        ({"name": "Venetian 50mm"}, "blind"),
        ({"treatment_category": "wallpaper"}, "wallpaper"),
        ({"name": "Wall Covering"}, "wallpaper"),
        ({"name": "Plantation Shutter"}, "other"),
        ({"category": "Awning"}, "other"),
        ({"treatment_category": "curtains"}, "curtain"),
        ({"name": "Sheer drape"}, "curtain"),
        ({}, "curtain"),
        ({"name": "Mystery product"}, "curtain"),
        ({"name": "Eyelet Curtains on Pole"}, "curtain"),
        ({"name": "Curtain Track Drapes"}, "curtain"),
        ({"name": "Pencil pleat curtain - track"}, "curtain"),
        ({"name": "Sheer on hardware rod"}, "curtain"),
        ({"name": "Motorised track"}, "other"),
    ])
    def test_detect(self, template, expected):
        assert detect_treatment_category(template) == expected

    def test_treatment_category_field_checked_first(self):
        """treatment_category 'curtains' wins over a name mentioning a track."""
        assert detect_treatment_category({"treatment_category": "curtains", "name": "Curtain on track"}) == "curtain"


# ===========================================================================
# Class 2: Curtain reference scenario
# ===========================================================================

class TestCurtainScenario:

    def test_reference_pair(self, pricing_engine, curtain_request):
        """
        required = 200 × 2.5 = 500; total = 500 + 5×2×2 = 520
        widths = ceil(520/137) = 4, seams = 3
        drop = 220 + 8 + 10 = 238
        linear_m = 2.38 × 4 × 1.05 = 9.996
        fabric = 9.996 × 20 = 199.92
        """
        result = pricing_engine.calculate(curtain_request)
        assert result.linear_meters == pytest.approx(9.996)
        assert result.widths_required == 4
        assert result.price_per_meter == 20
        assert result.fabric_cost == pytest.approx(199.92)
        assert result.total_cost == pytest.approx(199.92)
        assert result.warnings == ()

        details = result.calculation_details
        assert details.treatment_category == "curtain"
        assert details.pricing_type == "per-linear-meter"
        assert details.curtain_count == 2
        assert details.required_width_cm == 500
        assert details.total_width_with_allowances_cm == 520
        assert details.total_drop_cm == 238
        assert details.seams_required == 3
        assert details.leftover_per_panel_cm == pytest.approx(7)
        assert details.leftover_total_cm == pytest.approx(28)

    def test_fabric_breakdown_line(self, pricing_engine, curtain_request):
        result = pricing_engine.calculate(curtain_request)
        (line,) = result.calculation_details.breakdown
        assert line.id == "fabric"
        assert line.name == "Linen Natural"
        assert line.category == "fabric"
        assert line.unit == "m"
        assert line.quantity == pytest.approx(9.996)
        assert line.unit_price == 20
        assert line.total_cost == pytest.approx(199.92)

    def test_single_panel(self, pricing_engine, curtain_request):
        """Single: 500 + 10 = 510 → still 4 widths → same metres."""
        result = pricing_engine.calculate(_with(curtain_request, template_update={"panel_configuration": "single"}))
        assert result.calculation_details.curtain_count == 1
        assert result.calculation_details.total_width_with_allowances_cm == 510
        assert result.widths_required == 4

    def test_base_price_priority(self, pricing_engine, curtain_request):
        """cost_price beats selling_price; without it price_per_meter is next."""
        fabric = dict(curtain_request["fabric_item"])
        del fabric["cost_price"]
        fabric["price_per_meter"] = 25
        result = pricing_engine.calculate(_with(curtain_request, fabric_item=fabric))
        assert result.price_per_meter == 25

    def test_measurement_aliases(self, pricing_engine, curtain_request):
        result = pricing_engine.calculate(
            _with(curtain_request, measurements={"measurement_a": "200", "measurement_b": "220"}),
        )
        assert result.linear_meters == pytest.approx(9.996)

    def test_accepts_model_input(self, pricing_engine, curtain_request):
        model = TreatmentPricingInput.model_validate(curtain_request)
        assert pricing_engine.calculate(model) == pricing_engine.calculate(curtain_request)

    def test_module_level_entry_point(self, curtain_request):
        result = calculate_treatment_pricing(curtain_request)
        assert result.fabric_cost == pytest.approx(199.92)


# ===========================================================================
# Class 3: Lining, manufacturing, heading, options
# ===========================================================================

class TestCostComponents:

    def test_lining(self, pricing_engine, curtain_request):
        """9.996 × 8 + 15 × 2 curtains = 79.968 + 30 = 109.968."""
        request = _with(
            curtain_request,
            template_update={"lining_types": [{"type": "Blackout", "price_per_metre": 8, "labour_per_curtain": 15}]},
            selected_lining="blackout",
        )
        result = pricing_engine.calculate(request)
        assert result.lining_cost == pytest.approx(109.968)
        assert result.lining_details.type == "Blackout"
        assert result.total_cost == pytest.approx(199.92 + 109.968)

    @pytest.mark.parametrize("lining", [None, "none", "None", ""])
    def test_no_lining(self, pricing_engine, curtain_request, lining):
        result = pricing_engine.calculate(_with(curtain_request, selected_lining=lining))
        assert result.lining_cost == 0
        assert result.warnings == ()

    def test_unknown_lining_warns(self, pricing_engine, curtain_request):
        result = pricing_engine.calculate(_with(curtain_request, selected_lining="Thermal"))
        assert result.lining_cost == 0
        assert any("Thermal" in w for w in result.warnings)

    def test_manufacturing(self, pricing_engine, curtain_request):
        """5 × 9.996 + 12 × 2 drops + 3 × 2 panels = 49.98 + 24 + 6 = 79.98."""
        request = _with(curtain_request, template_update={
            "machine_price_per_metre": 5, "machine_price_per_drop": 12, "machine_price_per_panel": 3,
        })
        result = pricing_engine.calculate(request)
        assert result.manufacturing_cost == pytest.approx(79.98)
        lines = {i.id: i for i in result.calculation_details.breakdown if i.category == "manufacturing"}
        assert (lines["manufacturing-metre"].quantity, lines["manufacturing-metre"].unit) == (pytest.approx(9.996), "m")
        assert lines["manufacturing-metre"].total_cost == pytest.approx(49.98)
        assert (lines["manufacturing-drop"].quantity, lines["manufacturing-drop"].unit) == (2, "drop")
        assert lines["manufacturing-drop"].total_cost == pytest.approx(24.0)
        assert (lines["manufacturing-panel"].quantity, lines["manufacturing-panel"].unit) == (2, "panel")

    def test_manufacturing_per_metre_only(self, pricing_engine, curtain_request):
        """Only a machine rate per metre → a single metre line, no panel line."""
        result = pricing_engine.calculate(_with(curtain_request, template_update={"machine_price_per_metre": 5}))
        (line,) = [i for i in result.calculation_details.breakdown if i.category == "manufacturing"]
        assert line.unit == "m"
        assert line.quantity == pytest.approx(9.996)
        assert line.unit_price == 5

    def test_heading_from_inventory_plus_upcharges(self, pricing_engine, curtain_request):
        """4.50/m × 2 m + 2/m × 2 m + 5 × 2 curtains = 9 + 4 + 10 = 23."""
        request = _with(
            curtain_request,
            template_update={"heading_upcharge_per_metre": 2, "heading_upcharge_per_curtain": 5},
            selected_heading="hd-1",
            inventory_items=[
                {"id": "hd-1", "name": "Pencil tape", "category": "heading", "price_per_meter": 4.5},
                {"id": "hd-1", "name": "Same id, wrong category", "category": "fabric", "price_per_meter": 99},
            ],
        )
        result = pricing_engine.calculate(request)
        assert result.heading_cost == pytest.approx(23.0)

    def test_heading_lines_carry_quantity_and_unit(self, pricing_engine, curtain_request):
        """Tape 2 m × 4.50 = 9; per-metre upcharge 2 m × 2 = 4; per-curtain 2 × 5 = 10."""
        request = _with(
            curtain_request,
            template_update={"heading_upcharge_per_metre": 2, "heading_upcharge_per_curtain": 5},
            selected_heading="hd-1",
            inventory_items=[{"id": "hd-1", "name": "Pencil tape", "category": "heading", "price_per_meter": 4.5}],
        )
        result = pricing_engine.calculate(request)
        lines = [i for i in result.calculation_details.breakdown if i.category == "heading"]
        assert [(i.id, i.quantity, i.unit, i.unit_price, i.total_cost) for i in lines] == [
            ("heading", 2.0, "m", 4.5, pytest.approx(9.0)),
            ("heading-upcharge-metre", 2.0, "m", 2.0, pytest.approx(4.0)),
            ("heading-upcharge-panel", 2, "panel", 5.0, pytest.approx(10.0)),
        ]
        assert lines[0].name == "Pencil tape"

    def test_lining_lines_split_material_and_labour(self, pricing_engine, curtain_request):
        """Material 9.996 m × 8 = 79.968; labour 2 panels × 15 = 30."""
        request = _with(
            curtain_request,
            template_update={"lining_types": [{"type": "Blackout", "price_per_metre": 8, "labour_per_curtain": 15}]},
            selected_lining="Blackout",
        )
        result = pricing_engine.calculate(request)
        lines = {i.id: i for i in result.calculation_details.breakdown if i.category == "lining"}
        assert (lines["lining"].unit, lines["lining"].total_cost) == ("m", pytest.approx(79.968))
        assert (lines["lining-labour"].quantity, lines["lining-labour"].unit) == (2, "panel")
        assert lines["lining-labour"].total_cost == pytest.approx(30.0)

    def test_standard_heading_is_free(self, pricing_engine, curtain_request):
        request = _with(curtain_request, selected_heading="standard",
                        template_update={"heading_upcharge_per_metre": 2})
        assert pricing_engine.calculate(request).heading_cost == 0

    def test_missing_heading_warns(self, pricing_engine, curtain_request):
        result = pricing_engine.calculate(_with(curtain_request, selected_heading="gone"))
        assert result.heading_cost == 0
        assert any("gone" in w for w in result.warnings)

    def test_selected_options(self, pricing_engine, curtain_request):
        """Tiebacks fixed 25 + weights 3 × 4 widths = 37."""
        request = _with(curtain_request, selected_options=[
            {"name": "Tiebacks", "pricing_method": "fixed", "price": 25},
            {"id": "w", "name": "Weights", "pricing_method": "per_width", "price": 3},
        ])
        result = pricing_engine.calculate(request)
        assert result.options_cost == pytest.approx(37.0)
        options = [i for i in result.calculation_details.breakdown if i.category == "option"]
        assert [o.name for o in options] == ["Tiebacks", "Weights"]
        assert options[1].unit == "width"
        assert options[1].quantity == 4

    def test_hierarchical_option_ids(self, pricing_engine, curtain_request):
        request = _with(
            curtain_request,
            selected_option_ids=["motor", "stale-id"],
            hierarchical_options=[{"id": "cat", "calculation_method": "per_panel",
                                   "subcategories": [{"id": "motor", "pricing_method": "inherit", "price": 100}]}],
        )
        assert pricing_engine.calculate(request).options_cost == pytest.approx(200.0)

    def test_total_is_sum_of_components(self, pricing_engine, curtain_request):
        request = _with(
            curtain_request,
            template_update={
                "lining_types": [{"type": "Blackout", "price_per_metre": 8, "labour_per_curtain": 15}],
                "machine_price_per_metre": 5,
                "heading_upcharge_per_curtain": 5,
            },
            selected_lining="Blackout",
            selected_options=[{"name": "Tiebacks", "price": 25}],
        )
        r = pricing_engine.calculate(request)
        assert r.total_cost == pytest.approx(
            r.fabric_cost + r.lining_cost + r.manufacturing_cost + r.options_cost + r.heading_cost
        )
        assert sum(i.total_cost for i in r.calculation_details.breakdown) == pytest.approx(r.total_cost)


# ===========================================================================
# Class 4: Hardware and labour
# ===========================================================================

class TestHardwareAndLabor:

    def test_hardware_added_to_total(self, pricing_engine, curtain_request):
        """Track 45 + runners CEIL(200/10) = 20 × 0.50 = 10 → 55."""
        request = _with(curtain_request, hardware={
            "name": "Ceiling track",
            "base_price": 45,
            "accessory_prices": {"runner": 0.5, "end_cap": 0},
            "mount_type": "ceiling",
        })
        result = pricing_engine.calculate(request)
        assert result.hardware_cost == pytest.approx(55.0)
        assert result.total_cost == pytest.approx(199.92 + 55.0)
        categories = [i.category for i in result.calculation_details.breakdown]
        assert categories.count("hardware") == 1
        assert categories.count("hardware_accessory") == 2

    def test_no_hardware(self, pricing_engine, curtain_request):
        assert pricing_engine.calculate(curtain_request).hardware_cost == 0

    def test_labor_is_informational(self, pricing_engine, curtain_request):
        """
        Labour (moderate, 30/h): base 2.5 h × 1.25 + 3 seams × 0.25 h = 3.875 h → 116.25.
        Not included in total_cost.
        """
        request = _with(curtain_request, template_update={"labor_rate": 30, "treatment_complexity": "moderate"})
        result = pricing_engine.calculate(request)
        assert result.labor.cost == pytest.approx(116.25)
        assert result.labor.breakdown.seam_hours == pytest.approx(0.75)
        assert result.total_cost == pytest.approx(199.92)

    def test_no_labor_without_rate(self, pricing_engine, curtain_request):
        assert pricing_engine.calculate(curtain_request).labor is None

    def test_unknown_complexity_warns(self, pricing_engine, curtain_request):
        request = _with(curtain_request, template_update={"labor_rate": 30, "treatment_complexity": "heroic"})
        result = pricing_engine.calculate(request)
        assert result.labor.complexity == "moderate"
        assert any("heroic" in w for w in result.warnings)


# ===========================================================================
# Class 5: Blinds and grids
# ===========================================================================

class TestBlinds:

    def _request(self, blind_template, **template_update):
        template = dict(blind_template, **template_update)
        return {
            "template": template,
            "measurements": {"rail_width": 120, "drop": 180},
            "fabric_item": {"name": "Blockout roller fabric", "unit_price": 50},
        }

    def test_per_sqm(self, pricing_engine, blind_template):
        """
        eff 120 × (180 + 8 + 10) = 120 × 198 → 2.376 sqm
        fabric = 2.376 × 50 = 118.80; manufacturing = 2.376 × 10 = 23.76
        """
        result = pricing_engine.calculate(self._request(blind_template, machine_price_per_metre=10))
        assert result.calculation_details.pricing_type == "per-sqm"
        assert result.sqm == pytest.approx(2.376)
        assert result.fabric_cost == pytest.approx(118.8)
        assert result.manufacturing_cost == pytest.approx(23.76)
        assert result.total_cost == pytest.approx(142.56)
        assert result.warnings == ()
        fabric_line = result.calculation_details.breakdown[0]
        assert (fabric_line.unit, fabric_line.quantity) == ("sqm", pytest.approx(2.376))
        assert result.calculation_details.effective_height_cm == 198

    def test_double_blind(self, pricing_engine, blind_template):
        request = self._request(blind_template)
        request["measurements"]["curtain_type"] = "double"
        result = pricing_engine.calculate(request)
        assert result.sqm == pytest.approx(4.752)
        assert result.calculation_details.curtain_count == 2

    def test_missing_blind_hems_warn(self, pricing_engine):
        request = {
            "template": {"name": "Roller Blind"},
            "measurements": {"rail_width": 100, "drop": 100},
            "fabric_item": {"unit_price": 10},
        }
        result = pricing_engine.calculate(request)
        assert result.sqm == pytest.approx(1.0)
        assert any("Header hem" in w for w in result.warnings)
        assert any("Bottom hem" in w for w in result.warnings)

    def test_engine_blind_hem_defaults(self):
        engine = TreatmentPricingEngine(blind_hem_defaults={"header_hem_cm": 10, "bottom_hem_cm": 10})
        result = engine.calculate({
            "template": {"name": "Roller Blind"},
            "measurements": {"rail_width": 100, "drop": 80},
        })
        assert result.sqm == pytest.approx(1.0)

    def test_grid_hit_all_inclusive(self, pricing_engine, blind_template, sample_grid):
        """
        Grid (140, 160) → cell (150, 180) = 330.
        includes_fabric_price → manufacturing forced to 0 despite a machine rate.
        """
        request = self._request(blind_template, pricing_type="pricing_grid",
                                includes_fabric_price=True, machine_price_per_metre=10)
        request["measurements"] = {"rail_width": 140, "drop": 160}
        request["pricing_grid_data"] = sample_grid
        result = pricing_engine.calculate(request)
        assert result.fabric_cost == 330
        assert result.manufacturing_cost == 0
        assert result.calculation_details.grid_price == 330
        assert result.warnings == ()

    def test_grid_priority_and_markup(self, pricing_engine, blind_template, sample_grid):
        """Fabric grid used when no explicit grid is passed; 20% markup → 330 × 1.2 = 396."""
        request = self._request(blind_template, pricing_type="grid",
                                pricing_grid_data={"widths": [500], "heights": [500], "prices": [[1]]})
        request["measurements"] = {"rail_width": 140, "drop": 160}
        request["fabric_item"].update(pricing_grid_data=sample_grid, pricing_grid_markup=20)
        result = pricing_engine.calculate(request)
        assert result.fabric_cost == pytest.approx(396.0)

    def test_grid_miss_falls_back_to_sqm(self, pricing_engine, blind_template, sample_grid):
        """300 × 300 exceeds the grid → per-sqm fallback: 300 × 318 / 10000 = 9.54 × 50 = 477."""
        request = self._request(blind_template, pricing_type="pricing_grid")
        request["measurements"] = {"rail_width": 300, "drop": 300}
        request["pricing_grid_data"] = sample_grid
        result = pricing_engine.calculate(request)
        assert result.fabric_cost == pytest.approx(477.0)
        assert any("grid" in w.lower() for w in result.warnings)

    def test_curtain_grid_miss_falls_back_to_linear_metres(self, pricing_engine, curtain_request, sample_grid):
        request = _with(curtain_request, template_update={"pricing_type": "pricing_grid"},
                        pricing_grid_data=sample_grid)
        request["measurements"] = {"rail_width": 250, "drop": 220}
        result = pricing_engine.calculate(request)
        assert result.fabric_cost == pytest.approx(result.linear_meters * 20)
        assert result.fabric_cost > 0
        assert any("grid" in w.lower() for w in result.warnings)

    def test_grid_without_data_warns(self, pricing_engine, blind_template):
        result = pricing_engine.calculate(self._request(blind_template, pricing_type="pricing_grid"))
        assert result.fabric_cost == pytest.approx(118.8)
        assert any("grid" in w.lower() for w in result.warnings)


# ===========================================================================
# Class 6: Wallpaper and other items
# ===========================================================================

class TestWallpaperAndOther:

    def _wallpaper(self, sold_by):
        return {
            "template": {"name": "Feature wall", "treatment_category": "wallpaper"},
            "measurements": {"wall_width": 300, "wall_height": 240},
            "fabric_item": {
                "name": "Botanical paper",
                "unit_price": 30,
                "wallpaper_roll_width": 53,
                "wallpaper_roll_length": 10,
                "wallpaper_sold_by": sold_by,
            },
        }

    def test_sold_by_roll(self, pricing_engine):
        """6 strips of 2.4 m, 4 per roll → 2 rolls × 30 = 60."""
        result = pricing_engine.calculate(self._wallpaper("per_roll"))
        assert result.fabric_cost == pytest.approx(60.0)
        assert result.calculation_details.wallpaper.rolls_needed == 2
        assert result.sqm == pytest.approx(7.2)
        assert result.calculation_details.breakdown[0].unit == "roll"

    def test_sold_by_metre(self, pricing_engine):
        """6 × 2.4 m = 14.4 m × 30 = 432."""
        result = pricing_engine.calculate(self._wallpaper("per_metre"))
        assert result.fabric_cost == pytest.approx(432.0)
        assert result.linear_meters == pytest.approx(14.4)

    def test_sold_by_sqm(self, pricing_engine):
        """7.2 sqm × 30 = 216."""
        assert pricing_engine.calculate(self._wallpaper("per_sqm")).fabric_cost == pytest.approx(216.0)

    def test_missing_roll_size_warns(self, pricing_engine):
        request = self._wallpaper("per_roll")
        del request["fabric_item"]["wallpaper_roll_length"]
        result = pricing_engine.calculate(request)
        assert result.fabric_cost == 0
        assert any("roll" in w.lower() for w in result.warnings)

    def test_other_manufactured_item(self, pricing_engine):
        """Shutter priced per sqm: 200 × (100 × 150 / 10000) = 300."""
        result = pricing_engine.calculate({
            "template": {"name": "Plantation Shutter", "pricing_type": "per_sqm"},
            "measurements": {"rail_width": 100, "drop": 150},
            "fabric_item": {"unit_price": 200},
        })
        assert result.calculation_details.treatment_category == "other"
        assert result.fabric_cost == pytest.approx(300.0)

    def test_other_defaults_to_fixed(self, pricing_engine):
        result = pricing_engine.calculate({
            "template": {"name": "Awning"},
            "measurements": {"rail_width": 100, "drop": 150},
            "fabric_item": {"unit_price": 850},
        })
        assert result.fabric_cost == 850


# ===========================================================================
# Class 7: Warnings and failures
# ===========================================================================

class TestWarningsAndFailures:

    def test_missing_fullness_and_hems(self, pricing_engine, curtain_fabric):
        """
        Fullness → 1, hems → 0: 200 cm / 137 → 2 widths × 2.2 m = 4.4 m × 20 = 88.
        """
        result = pricing_engine.calculate({
            "template": {"name": "Basic curtain"},
            "measurements": {"rail_width": 200, "drop": 220},
            "fabric_item": curtain_fabric,
        })
        assert result.calculation_details.fullness_ratio == 1.0
        assert result.fabric_cost == pytest.approx(88.0)
        assert any("Fullness" in w for w in result.warnings)
        assert any("Header hem" in w for w in result.warnings)
        assert any("Bottom hem" in w for w in result.warnings)

    def test_warnings_are_logged(self, pricing_engine, curtain_fabric, caplog):
        with caplog.at_level(logging.WARNING, logger="treatment-pricing"):
            pricing_engine.calculate({
                "template": {"name": "Basic curtain"},
                "measurements": {"rail_width": 200, "drop": 220},
                "fabric_item": curtain_fabric,
            })
        assert "Fullness ratio not set" in caplog.text

    @pytest.mark.parametrize("measurements", [
        {"rail_width": 0, "drop": 220},
        {"rail_width": 200, "drop": -1},
        {"rail_width": 200},
        {},
    ])
    def test_invalid_dimensions(self, pricing_engine, curtain_request, measurements):
        with pytest.raises(InvalidDimensionError):
            pricing_engine.calculate(_with(curtain_request, measurements=measurements))

    def test_priced_fabric_without_width_raises(self, pricing_engine, curtain_request):
        fabric = {"name": "Mystery bolt", "cost_price": 20}
        with pytest.raises(UnresolvedFabricWidthError, match="Mystery bolt"):
            pricing_engine.calculate(_with(curtain_request, fabric_item=fabric))

    def test_measurement_fabric_width_used(self, pricing_engine, curtain_request):
        fabric = {"name": "Mystery bolt", "cost_price": 20}
        request = _with(curtain_request, fabric_item=fabric,
                        measurements={"rail_width": 200, "drop": 220, "fabric_width_cm": 137})
        assert pricing_engine.calculate(request).widths_required == 4

    def test_unpriced_fabric_without_width_warns(self, pricing_engine, curtain_request):
        result = pricing_engine.calculate(_with(curtain_request, fabric_item=None))
        assert result.widths_required == 0
        assert result.fabric_cost == 0
        assert any("Fabric width" in w for w in result.warnings)


# ===========================================================================
# Class 8: Result contract
# ===========================================================================

class TestResultContract:

    def test_result_is_frozen(self, pricing_engine, curtain_request):
        result = pricing_engine.calculate(curtain_request)
        assert isinstance(result, TreatmentPricingResult)
        with pytest.raises(Exception):
            result.total_cost = 0
        assert isinstance(result.calculation_details.breakdown, tuple)
        assert isinstance(result.warnings, tuple)

    def test_lining_details_cannot_change_input(self, pricing_engine, curtain_request):
        request = TreatmentPricingInput.model_validate(_with(
            curtain_request,
            template_update={"lining_types": [{"type": "Blackout", "price_per_metre": 10}]},
            selected_lining="Blackout",
        ))
        result = pricing_engine.calculate(request)
        with pytest.raises(Exception):
            result.lining_details.price_per_metre = 999
        assert request.template.lining_types[0].price_per_metre == 10
        assert pricing_engine.calculate(request) == result

    def test_idempotent(self, pricing_engine, curtain_request):
        request = _with(
            curtain_request,
            selected_options=[{"name": "Tiebacks", "price": 25}],
            hardware={"name": "Track", "base_price": 45, "accessory_prices": {"runner": 0.5}},
        )
        snapshot = copy.deepcopy(request)
        first = pricing_engine.calculate(request)
        second = pricing_engine.calculate(request)
        assert first == second
        assert first.model_dump() == second.model_dump()
        assert request == snapshot

    def test_currency_tag_and_trace_symbol(self, pricing_engine, curtain_request):
        result = pricing_engine.calculate(_with(curtain_request, currency="USD"))
        assert result.currency == "USD"
        assert result.calculation_details.breakdown[0].description.endswith("$199.92")

    def test_completion_logged_with_extras(self, pricing_engine, curtain_request, caplog):
        with caplog.at_level(logging.INFO, logger="treatment-pricing"):
            pricing_engine.calculate(curtain_request)
        records = [r for r in caplog.records if hasattr(r, "total_cost")]
        assert len(records) == 1
        assert records[0].template_id == "tpl-curtain"
        assert records[0].treatment_category == "curtain"
        assert records[0].total_cost == pytest.approx(199.92)
        assert records[0].duration_ms >= 0

    def test_injected_logger(self, curtain_request, caplog):
        engine = TreatmentPricingEngine(logger=logging.getLogger("treatment-pricing.custom"))
        with caplog.at_level(logging.INFO, logger="treatment-pricing"):
            engine.calculate(curtain_request)
        assert any(r.name == "treatment-pricing.custom" for r in caplog.records)
