import json
from dataclasses import dataclass
from typing import Dict, List

from accessories import (
    AccessoryCategory,
    AlignmentBase,
    EarringsAligner,
    GlassesAligner,
    NecklaceAligner,
    ShirtAligner,
)


class CatalogError(ValueError):
    pass


@dataclass(frozen=True)
class AccessoryDescriptor:
    id: str
    name: str
    asset_path: str
    category: AccessoryCategory

    @property
    def instance_count(self) -> int:
        return 2 if self.category is AccessoryCategory.EARRINGS else 1

    @property
    def base_extent(self) -> float:
        # World-space size the asset's largest dimension is normalized to.
        return BASE_EXTENTS[self.category]


BASE_EXTENTS: Dict[AccessoryCategory, float] = {
    AccessoryCategory.GLASSES: 0.15,
    AccessoryCategory.EARRINGS: 0.03,
    AccessoryCategory.NECKLACE: 0.12,
    AccessoryCategory.SHIRT: 0.3,
}


def get_aligners() -> Dict[AccessoryCategory, AlignmentBase]:
    aligners: Dict[AccessoryCategory, AlignmentBase] = {
        AccessoryCategory.GLASSES: GlassesAligner(),
        AccessoryCategory.EARRINGS: EarringsAligner(),
        AccessoryCategory.NECKLACE: NecklaceAligner(),
        AccessoryCategory.SHIRT: ShirtAligner(),
    }
    missing = set(AccessoryCategory) - set(aligners)
    if missing:
        raise RuntimeError(f"No aligner for categories: {sorted(c.value for c in missing)}")
    return aligners


def get_accessory_catalog() -> List[AccessoryDescriptor]:
    entries: List[AccessoryDescriptor] = [
        AccessoryDescriptor("aviator", "Aviator", "models/glasses1.glb", AccessoryCategory.GLASSES),
        AccessoryDescriptor("stylish", "Stylish", "models/glasses2.glb", AccessoryCategory.GLASSES),
        AccessoryDescriptor("round", "Round", "models/glasses3.glb", AccessoryCategory.GLASSES),
    ]

    entries += [
        AccessoryDescriptor("sapphire", "Sapphire", "models/sapphire_earring.glb", AccessoryCategory.EARRINGS),
        AccessoryDescriptor("golden", "Golden", "models/golden_earring.glb", AccessoryCategory.EARRINGS),
        AccessoryDescriptor("louboutin", "Louboutin", "models/earrings2.glb", AccessoryCategory.EARRINGS),
        AccessoryDescriptor("amethyst", "Amethyst", "models/earrings3.glb", AccessoryCategory.EARRINGS),
        AccessoryDescriptor("jhumka", "Jhumka", "models/earrings4.glb", AccessoryCategory.EARRINGS),
    ]

    entries += [
        AccessoryDescriptor("pearl-necklace", "Pearls", "models/gemstone_necklace.glb", AccessoryCategory.NECKLACE),
        AccessoryDescriptor("elegant-jewel", "Elegant Jewel", "models/necklace2.glb", AccessoryCategory.NECKLACE),
        AccessoryDescriptor("orbit-pendant", "Orbit Pendant", "models/necklace3.glb", AccessoryCategory.NECKLACE),
    ]

    entries += [
        AccessoryDescriptor("classic-tshirt", "Classic Tee", "models/tshirt.glb", AccessoryCategory.SHIRT),
    ]
    return entries


def load_catalog(path: str) -> List[AccessoryDescriptor]:
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, list):
        raise CatalogError(f"{path}: expected a list of accessories")

    entries: List[AccessoryDescriptor] = []
    seen = set()
    for idx, item in enumerate(data):
        try:
            entry = AccessoryDescriptor(
                id=str(item["id"]),
                name=str(item["name"]),
                asset_path=str(item["asset_path"]),
                category=AccessoryCategory(str(item["category"]).lower()),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CatalogError(f"{path}: invalid entry #{idx}: {exc}") from exc
        if entry.id in seen:
            raise CatalogError(f"{path}: duplicate accessory id {entry.id!r}")
        seen.add(entry.id)
        entries.append(entry)
    return entries


def group_by_category(entries: List[AccessoryDescriptor]) -> Dict[AccessoryCategory, List[AccessoryDescriptor]]:
    groups: Dict[AccessoryCategory, List[AccessoryDescriptor]] = {}
    for entry in entries:
        groups.setdefault(entry.category, []).append(entry)
    return groups
