"""
Pick the entities that describe the cuttable part outline.

Drawings mix the part outline with mold-plate scaffolding on other layers.
Strategies are tried in order and the first one that keeps at least
MIN_SELECTED_ENTITIES entities wins:

  1. layers whose name mentions die / cut / outline / part
  2. layers that are not a known structural layer (plate, border, ...)
  3. everything
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from drawing_entities import GeometryEntity

logger = logging.getLogger(__name__)

MIN_SELECTED_ENTITIES = 4

CUT_LAYER_KEYWORDS = ("die", "cut", "outline", "part")
STRUCTURAL_LAYER_NAMES = frozenset(
    {"plate", "border", "frame", "sheet", "web", "default", "0"}
)


@dataclass(frozen=True)
class LayerSelection:
    """Entities chosen for extraction and the strategy that chose them."""
    strategy: str
    entities: Tuple[GeometryEntity, ...]

    @property
    def count(self) -> int:
        return len(self.entities)


def is_cut_layer(layer: str) -> bool:
    name = layer.lower()
    return any(keyword in name for keyword in CUT_LAYER_KEYWORDS)


def is_structural_layer(layer: str) -> bool:
    return layer.strip().lower() in STRUCTURAL_LAYER_NAMES


LayerStrategy = Tuple[str, Callable[[GeometryEntity], bool]]

SELECTION_STRATEGIES: Tuple[LayerStrategy, ...] = (
    ("cut_layer_keyword", lambda e: is_cut_layer(e.layer)),
    ("non_structural_layer", lambda e: not is_structural_layer(e.layer)),
)


def select_part_entities(entities: Sequence[GeometryEntity]) -> LayerSelection:
    """Return the subset of *entities* representing the part geometry."""
    for name, predicate in SELECTION_STRATEGIES:
        matched = tuple(e for e in entities if predicate(e))
        if len(matched) >= MIN_SELECTED_ENTITIES:
            logger.debug("Layer strategy %s kept %d/%d entities", name, len(matched), len(entities))
            return LayerSelection(strategy=name, entities=matched)

    logger.debug("No layer strategy matched, using all %d entities", len(entities))
    return LayerSelection(strategy="all_entities", entities=tuple(entities))


def layer_names(entities: Sequence[GeometryEntity]) -> List[str]:
    """Distinct layer names in drawing order."""
    seen: List[str] = []
    for entity in entities:
        if entity.layer not in seen:
            seen.append(entity.layer)
    return seen
