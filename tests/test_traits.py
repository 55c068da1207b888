"""Tests for trait categories and avatar selections."""

import pytest

from nft_avatar.traits import Z_ORDER, AvatarSelection, Trait, TraitCategory


def make_trait(name: str) -> Trait:
    return Trait(name=name, value=name.lower(), image_ref=f"/traits/{name}.png")


class TestTraitCategory:
    """Tests for the category z-order."""

    def test_canonical_order(self):
        assert [c.value for c in Z_ORDER] == [
            "background", "fur", "face", "eyes", "mouth", "head", "mask", "minion",
        ]

    def test_z_index(self):
        assert TraitCategory.BACKGROUND.z_index == 0
        assert TraitCategory.MINION.z_index == 7

    def test_parse_is_case_insensitive(self):
        assert TraitCategory.parse(" Eyes ") is TraitCategory.EYES

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            TraitCategory.parse("tail")


class TestTrait:
    """Tests for Trait.from_dict."""

    def test_ui_shape(self):
        trait = Trait.from_dict({"name": "Brown", "value": "brown", "image": "/fur/brown.png"})
        assert trait == Trait("Brown", "brown", "/fur/brown.png")

    def test_image_ref_key(self):
        trait = Trait.from_dict({"name": "Brown", "imageRef": "/fur/brown.png"})
        assert trait.image_ref == "/fur/brown.png"
        assert trait.value == "Brown"

    def test_missing_image(self):
        with pytest.raises(ValueError):
            Trait.from_dict({"name": "Brown"})


class TestAvatarSelection:
    """Tests for AvatarSelection."""

    def test_starts_empty(self):
        selection = AvatarSelection()
        assert selection.is_empty()
        assert selection.layers() == []
        assert all(selection[c] is None for c in Z_ORDER)

    def test_select_returns_new_snapshot(self):
        empty = AvatarSelection()
        selected = empty.select(TraitCategory.FUR, make_trait("Brown"))
        assert empty.is_empty()
        assert selected[TraitCategory.FUR].name == "Brown"

    def test_layers_follow_z_order_not_selection_order(self):
        selection = AvatarSelection()
        for category in (TraitCategory.MINION, TraitCategory.BACKGROUND, TraitCategory.EYES, TraitCategory.FUR):
            selection = selection.select(category, make_trait(category.value))

        categories = [category for category, _ in selection.layers()]
        assert categories == [TraitCategory.BACKGROUND, TraitCategory.FUR, TraitCategory.EYES, TraitCategory.MINION]
        assert selection.trait_refs() == [
            "/traits/background.png", "/traits/fur.png", "/traits/eyes.png", "/traits/minion.png",
        ]

    def test_reselecting_replaces_trait(self):
        selection = AvatarSelection().select(TraitCategory.EYES, make_trait("Blue"))
        selection = selection.select(TraitCategory.EYES, make_trait("Green"))
        assert len(selection.layers()) == 1
        assert selection[TraitCategory.EYES].name == "Green"

    def test_clear(self):
        selection = AvatarSelection().select(TraitCategory.HEAD, make_trait("Cap"))
        assert selection.clear(TraitCategory.HEAD).is_empty()

    def test_snapshot_is_read_only(self):
        selection = AvatarSelection()
        with pytest.raises(TypeError):
            selection._traits[TraitCategory.FUR] = make_trait("Brown")

    def test_snapshots_are_hashable(self):
        first = AvatarSelection().select(TraitCategory.FUR, make_trait("Brown"))
        second = AvatarSelection().select(TraitCategory.FUR, make_trait("Brown"))
        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second, AvatarSelection()}) == 2

    def test_from_dict(self):
        selection = AvatarSelection.from_dict({
            "mask": {"name": "Gas", "value": "gas", "image": "/mask/gas.png"},
            "background": {"name": "Space", "value": "space", "image": "/bg/space.gif"},
            "eyes": None,
        })
        assert selection.trait_refs() == ["/bg/space.gif", "/mask/gas.png"]

    def test_from_dict_unknown_category(self):
        with pytest.raises(ValueError):
            AvatarSelection.from_dict({"tail": None})

    def test_round_trip_dict(self):
        selection = AvatarSelection().select(TraitCategory.FACE, make_trait("Smile"))
        assert AvatarSelection.from_dict(selection.to_dict()) == selection
