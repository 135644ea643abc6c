"""
YOLO Detector Engine
====================

Production detector backed by an ultralytics YOLO model pretrained on COCO.

This engine:
    - Loads the weights once, on construction
    - Runs inference off the event loop (asyncio.to_thread)
    - Maps model output to Detection (label, score, xywh box)

Design Rules:
    - Fail fast on misconfiguration (missing package or weights)
    - Inference errors surface as DetectionUnavailable, never crash the loop
"""

import asyncio
import logging
from typing import Any, List

from stampede_watch.errors import DetectionUnavailable
from stampede_watch.models.detection import Detection
from stampede_watch.stream.frame import Frame


logger = logging.getLogger(__name__)


class YoloDetector:
    """
    Object detector using ultralytics YOLO.

    Attributes:
        model_path: Weights file or hub name (e.g. 'yolov8n.pt')
        confidence_threshold: Detections below this score are dropped
    """

    def __init__(
        self,
        model_path: str = "yolov8n.pt",
        confidence_threshold: float = 0.5,
    ) -> None:
        """
        Initialize the detector and load weights.

        Raises:
            ImportError: If ultralytics is not installed
            DetectionUnavailable: If the weights cannot be loaded
        """
        self.model_path = model_path
        self.confidence_threshold = confidence_threshold

        self._inference_count: int = 0
        self._error_count: int = 0

        self._model = self._load_model(model_path)

        logger.info(
            f"YoloDetector initialized: model={model_path}, "
            f"confidence>={confidence_threshold}"
        )

    def _load_model(self, model_path: str) -> Any:
        try:
            from ultralytics import YOLO
        except ImportError:
            raise ImportError(
                "ultralytics is required for YoloDetector. "
                "Install with: pip install 'stampede-watch[yolo]'"
            )

        try:
            return YOLO(model_path)
        except Exception as e:
            raise DetectionUnavailable(f"Failed to load YOLO model {model_path!r}: {e}")

    async def detect(self, frame: Frame) -> List[Detection]:
        try:
            results = await asyncio.to_thread(
                self._model,
                frame.image,
                conf=self.confidence_threshold,
                verbose=False,
            )
        except Exception as e:
            self._error_count += 1
            raise DetectionUnavailable(
                f"YOLO inference failed (frame={frame.frame_id}): {e}"
            )

        self._inference_count += 1
        return self._to_detections(results)

    @staticmethod
    def _to_detections(results: Any) -> List[Detection]:
        detections: List[Detection] = []
        for result in results:
            names = result.names
            boxes = result.boxes
            if boxes is None:
                continue
            for xyxy, score, cls in zip(
                boxes.xyxy.tolist(), boxes.conf.tolist(), boxes.cls.tolist()
            ):
                x1, y1, x2, y2 = xyxy
                detections.append(
                    Detection(
                        label=str(names[int(cls)]),
                        score=float(score),
                        bbox=(x1, y1, x2 - x1, y2 - y1),
                    )
                )
        return detections

    def get_metrics(self) -> dict:
        """Get engine metrics for observability."""
        return {
            "inference_count": self._inference_count,
            "error_count": self._error_count,
            "model_path": self.model_path,
        }
