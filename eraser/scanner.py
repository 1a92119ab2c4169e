"""
Multi-scale face scanning with overlapping tiles.

Small-input face detectors miss small faces in large images. The scanner runs
the detector once on the whole image and then, for large images, on a grid of
overlapping crops, remapping every crop-local box back to image coordinates.
The candidates are returned raw; fusion happens in the pipeline together with
the other detectors' output.
"""

from typing import Iterator, List, Optional, Tuple
import numpy as np

from .config import ScanConfig
from .detectors import FaceDetector, FacePrediction
from .geometry import Region
from .logger import LoggerMixin

SOURCE_FULL = "full"
SOURCE_TILE = "tile"

Tile = Tuple[int, int, int, int]


def prediction_to_region(
    prediction: FacePrediction,
    offset: Tuple[int, int] = (0, 0),
    source: str = SOURCE_FULL,
    default_score: float = 0.9
) -> Region:
    """
    Convert a detector prediction to a Region in image coordinates.

    Args:
        prediction: Box in the coordinates of the crop it was found in
        offset: (x, y) origin of that crop inside the full image
        source: Tag recorded on the region
        default_score: Score used when the detector gave no probability
    """
    (x0, y0), (x1, y1) = prediction.top_left, prediction.bottom_right
    score = default_score if prediction.probability is None else float(prediction.probability)
    return Region(
        x=float(x0) + offset[0],
        y=float(y0) + offset[1],
        width=float(x1) - float(x0),
        height=float(y1) - float(y0),
        source=source,
        score=score
    )


class TiledScanner(LoggerMixin):
    """Runs a face detector on the full image and on overlapping tiles."""

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    def tile_size(self, width: int, height: int) -> int:
        return min(width, height, self.config.max_tile_size)

    def needs_tiling(self, width: int, height: int) -> bool:
        return max(width, height) > self.config.tiling_min_dimension

    def tile_grid(self, width: int, height: int) -> Iterator[Tile]:
        """
        Yield (x, y, w, h) tiles covering the image, row by row.

        Consecutive origins are `step` apart, so neighbouring tiles overlap by
        `tile_size - step`. Edge crops are truncated to the image and dropped
        when either side is under `min_tile_size`.
        """
        tile_size = self.tile_size(width, height)
        step = int(tile_size * (1.0 - self.config.tile_overlap))
        if step < 1:
            return

        for y in range(0, height, step):
            for x in range(0, width, step):
                crop_w = min(tile_size, width - x)
                crop_h = min(tile_size, height - y)
                if crop_w < self.config.min_tile_size or crop_h < self.config.min_tile_size:
                    continue
                yield x, y, crop_w, crop_h

    def scan(self, image: np.ndarray, detector: FaceDetector) -> List[Region]:
        """
        Collect face candidates from the full image and, for large images, from tiles.

        Args:
            image: Source image array (H, W[, C])
            detector: Face detector accepting full images and crops

        Returns:
            Candidate regions in image coordinates, not deduplicated
        """
        height, width = image.shape[:2]

        regions = [
            prediction_to_region(p, (0, 0), SOURCE_FULL, self.config.full_image_score)
            for p in detector.detect(image)
        ]
        full_count = len(regions)

        tiles_scanned = 0
        if self.needs_tiling(width, height):
            for x, y, w, h in self.tile_grid(width, height):
                crop = np.ascontiguousarray(image[y:y + h, x:x + w])
                for prediction in detector.detect(crop):
                    regions.append(
                        prediction_to_region(prediction, (x, y), SOURCE_TILE, self.config.tile_score)
                    )
                tiles_scanned += 1

        self.log_debug(
            f"Scanned {width}x{height}: full={full_count}, "
            f"tiles={tiles_scanned}, tile detections={len(regions) - full_count}"
        )
        return regions
