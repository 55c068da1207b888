"""
Trait categories, traits and the avatar selection snapshot.

The declaration order of TraitCategory is the z-order used everywhere an
avatar is composited: earlier categories are drawn first (at the back).
"""

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


class TraitCategory(enum.Enum):
    BACKGROUND = "background"
    FUR = "fur"
    FACE = "face"
    EYES = "eyes"
    MOUTH = "mouth"
    HEAD = "head"
    MASK = "mask"
    MINION = "minion"

    @classmethod
    def parse(cls, text: str) -> "TraitCategory":
        """Parse a category name, ignoring case and surrounding whitespace."""
        try:
            return cls(text.strip().lower())
        except (AttributeError, ValueError) as exc:
            names = ", ".join(c.value for c in cls)
            raise ValueError(f"Unknown trait category: {text!r}. Expected one of: {names}") from exc

    @property
    def z_index(self) -> int:
        return Z_ORDER.index(self)


Z_ORDER: Tuple[TraitCategory, ...] = tuple(TraitCategory)


@dataclass(frozen=True)
class Trait:
    """One selectable option within a category."""

    name: str
    value: str
    image_ref: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Trait":
        image_ref = data.get("image") or data.get("imageRef") or data.get("image_ref")
        if not image_ref:
            raise ValueError(f"Trait {data.get('name')!r} has no image reference")
        name = str(data.get("name", ""))
        return cls(name=name, value=str(data.get("value", name)), image_ref=str(image_ref))

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "value": self.value, "image": self.image_ref}


@dataclass(frozen=True)
class AvatarSelection:
    """
    Immutable snapshot of the trait chosen for every category.

    A category is either unselected (None) or holds exactly one Trait.
    ``select`` and ``clear`` return new selections; a snapshot handed to the
    pipeline never changes underneath it.
    Snapshots compare and hash by their traits.
    """

    _traits: Mapping[TraitCategory, Optional[Trait]] = field(
        default_factory=lambda: MappingProxyType({category: None for category in Z_ORDER})
    )

    def __post_init__(self):
        traits = {category: None for category in Z_ORDER}
        for category, trait in self._traits.items():
            if not isinstance(category, TraitCategory):
                category = TraitCategory.parse(category)
            if trait is not None and not isinstance(trait, Trait):
                raise TypeError(f"Expected Trait for {category.value}, got {type(trait).__name__}")
            traits[category] = trait
        object.__setattr__(self, "_traits", MappingProxyType(traits))

    def __hash__(self):
        return hash(tuple(self._traits.items()))

    def __getitem__(self, category: TraitCategory) -> Optional[Trait]:
        return self._traits[category]

    def select(self, category: TraitCategory, trait: Trait) -> "AvatarSelection":
        traits = dict(self._traits)
        traits[category] = trait
        return AvatarSelection(traits)

    def clear(self, category: TraitCategory) -> "AvatarSelection":
        traits = dict(self._traits)
        traits[category] = None
        return AvatarSelection(traits)

    def is_empty(self) -> bool:
        return all(trait is None for trait in self._traits.values())

    def layers(self) -> List[Tuple[TraitCategory, Trait]]:
        """Selected (category, trait) pairs, back to front."""
        return [
            (category, self._traits[category])
            for category in Z_ORDER
            if self._traits[category] is not None
        ]

    def trait_refs(self) -> List[str]:
        """Image references of the selected traits in z-order."""
        return [trait.image_ref for _, trait in self.layers()]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AvatarSelection":
        """
        Build a selection from the UI's JSON shape.

        Args:
            data: Mapping of category name to a trait object or None

        Returns:
            The parsed selection; unknown categories raise ValueError
        """
        traits: Dict[TraitCategory, Optional[Trait]] = {}
        for name, trait_data in data.items():
            category = TraitCategory.parse(name)
            traits[category] = Trait.from_dict(trait_data) if trait_data else None
        return cls(traits)

    def to_dict(self) -> Dict[str, Optional[Dict[str, str]]]:
        return {
            category.value: trait.to_dict() if trait is not None else None
            for category, trait in self._traits.items()
        }
