"""
Cross-detector region fusion.

Candidates from several detectors (and from overlapping tiles of the same
detector) are merged greedily: the highest-scoring candidate anchors a cluster
and every later candidate that overlaps it by more than the IoU threshold grows
that cluster instead of being kept on its own.
"""

from typing import Iterable, List

from .geometry import Region, compute_iou, union
from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_IOU_THRESHOLD = 0.3


def deduplicate_regions(
    regions: Iterable[Region],
    iou_threshold: float = DEFAULT_IOU_THRESHOLD
) -> List[Region]:
    """
    Merge overlapping regions, keeping the highest score of each cluster.

    Args:
        regions: Candidate regions in any order and from any source
        iou_threshold: Overlap above which two regions are treated as one object

    Returns:
        Kept regions, highest-scoring anchor first. A kept region is the
        bounding box of everything it absorbed.
    """
    # sorted() is stable: equal scores keep their input order
    ordered = sorted(regions, key=lambda r: r.score, reverse=True)
    kept: List[Region] = []

    for candidate in ordered:
        for index, anchor in enumerate(kept):
            if compute_iou(candidate, anchor) > iou_threshold:
                kept[index] = union(anchor, candidate)
                break
        else:
            kept.append(candidate)

    if len(kept) != len(ordered):
        logger.debug(f"Merged {len(ordered)} candidate regions into {len(kept)}")

    return kept
