from accessories.base import AccessoryCategory, AlignmentBase
from accessories.earrings import EarringsAligner
from accessories.glasses import GlassesAligner
from accessories.necklace import NecklaceAligner
from accessories.shirt import ShirtAligner

__all__ = [
    "AccessoryCategory",
    "AlignmentBase",
    "GlassesAligner",
    "EarringsAligner",
    "NecklaceAligner",
    "ShirtAligner",
]
