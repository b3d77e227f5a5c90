"""
Tests for edit_policy: copy mode to edit policy selection.

select_policy is total: every input, known or not, yields a usable policy.
"""

import pytest

from copycat.services.edit_policy import PolicyOptions, select_policy
from copycat.services.models import CopyMode, RegionClass, RenderMode

BRAND = PolicyOptions(brand_name="Algonova")


class TestPolicyTotality:
    """Every copy mode produces a non-empty region set and instruction."""

    @pytest.mark.parametrize("mode", list(CopyMode))
    def test_every_mode_has_regions_and_instruction(self, mode):
        options = PolicyOptions(custom_instruction="Make it festive", brand_name="Algonova")

        policy = select_policy(mode, options)

        assert policy.region_classes
        assert policy.instruction.strip()
        assert policy.required_marker == "Algonova"

    @pytest.mark.parametrize("tag", ["banana", "", "LOGO ONLY!", None])
    def test_unknown_mode_falls_back_to_logo_only(self, tag):
        policy = select_policy(tag, BRAND)

        assert policy.copy_mode == CopyMode.LOGO_ONLY
        assert policy.region_classes == frozenset({RegionClass.LOGO})
        assert policy.fallback_reason is not None

    def test_fallback_is_logged(self, caplog):
        with caplog.at_level("WARNING"):
            select_policy("banana", BRAND)

        assert "banana" in caplog.text


class TestPolicyTable:
    """Region classes and render modes per copy mode."""

    def test_logo_only(self):
        policy = select_policy("logo_only", BRAND)

        assert policy.region_classes == frozenset({RegionClass.LOGO})
        assert policy.render_mode == RenderMode.MASKED_EDIT
        assert "Algonova" in policy.instruction
        assert policy.fallback_reason is None

    def test_logo_and_color_includes_buttons_and_decor(self):
        policy = select_policy("logo_and_color", BRAND)

        assert policy.region_classes == frozenset({RegionClass.LOGO, RegionClass.BUTTON, RegionClass.DECOR})

    def test_minor_character_variation(self):
        policy = select_policy("minor_character_variation", BRAND)

        assert RegionClass.CHARACTER in policy.region_classes
        assert RegionClass.TEXT not in policy.region_classes

    def test_default_mask_edit(self):
        policy = select_policy("default_mask_edit", BRAND)

        assert policy.region_classes == frozenset({RegionClass.LOGO, RegionClass.TEXT})

    def test_full_custom_with_instruction_recreates(self):
        options = PolicyOptions(custom_instruction="Change the background to a night sky.", brand_name="Algonova")

        policy = select_policy("full_custom", options)

        assert policy.copy_mode == CopyMode.FULL_CUSTOM
        assert policy.render_mode == RenderMode.RECREATE
        assert policy.region_classes == frozenset(RegionClass)
        assert policy.instruction.startswith("Change the background to a night sky.")
        assert "Algonova" in policy.instruction

    @pytest.mark.parametrize("custom", [None, "", "   "])
    def test_full_custom_without_instruction_uses_default_mask_edit(self, custom):
        policy = select_policy("full_custom", PolicyOptions(custom_instruction=custom, brand_name="Algonova"))

        assert policy.copy_mode == CopyMode.DEFAULT_MASK_EDIT
        assert policy.render_mode == RenderMode.MASKED_EDIT
        assert policy.fallback_reason is not None

    def test_custom_instruction_with_braces_is_kept_verbatim(self):
        options = PolicyOptions(custom_instruction="Add a {sale} badge", brand_name="Algonova")

        policy = select_policy("full_custom", options)

        assert "{sale}" in policy.instruction


class TestModeAliases:
    """Legacy UI tags and spelling variants resolve to canonical modes."""

    @pytest.mark.parametrize("tag,expected", [
        ("simple_copy", CopyMode.LOGO_ONLY),
        ("copy_with_color", CopyMode.LOGO_AND_COLOR),
        ("slightly_different", CopyMode.MINOR_CHARACTER_VARIATION),
        ("mask_edit", CopyMode.DEFAULT_MASK_EDIT),
        ("Logo-Only", CopyMode.LOGO_ONLY),
        ("  LOGO_AND_COLOR ", CopyMode.LOGO_AND_COLOR),
    ])
    def test_aliases(self, tag, expected):
        policy = select_policy(tag, BRAND)

        assert policy.copy_mode == expected
        assert policy.fallback_reason is None

    def test_brand_name_option_sets_marker(self):
        policy = select_policy("logo_only", PolicyOptions(brand_name="Brandy"))

        assert policy.required_marker == "Brandy"
        assert "Brandy" in policy.instruction

    def test_audit_dict_is_json_friendly(self):
        audit = select_policy("logo_and_color", BRAND).to_audit_dict()

        assert audit["copy_mode"] == "logo_and_color"
        assert audit["region_classes"] == ["button", "decor", "logo"]
        assert audit["render_mode"] == "masked_edit"
