from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from mapboard.client.errors import MalformedCollectionError
from mapboard.domain.geojson import parse_features
from mapboard.domain.models import DroppedFeature, Feature

logger = logging.getLogger(__name__)


class FeatureStore:
    """Holds the last successfully loaded feature collection.

    ``load`` replaces the collection wholesale. A malformed payload aborts the
    load and leaves the previous collection untouched; individual features with
    unusable geometry are dropped and reported through ``dropped``.
    """

    def __init__(self) -> None:
        self._features: Tuple[Feature, ...] = ()
        self._by_id: Dict[Any, Feature] = {}
        self.dropped: List[DroppedFeature] = []

    def load(self, raw_collection: Any) -> None:
        if not isinstance(raw_collection, dict):
            raise MalformedCollectionError("feature collection must be an object")
        raw_features = raw_collection.get("features")
        if not isinstance(raw_features, list):
            raise MalformedCollectionError("feature collection has no 'features' array")

        features, dropped = parse_features(raw_features)
        for item in dropped:
            logger.warning("Dropping feature id=%s: %s", item.feature_id, item.reason)
        self._features = tuple(features)
        self._by_id = {feature.id: feature for feature in features}
        self.dropped = dropped
        logger.info("Loaded %d features (%d dropped)", len(features), len(dropped))

    def all(self) -> Tuple[Feature, ...]:
        return self._features

    def get(self, feature_id: Any) -> Optional[Feature]:
        feature = self._by_id.get(feature_id)
        if feature is None and isinstance(feature_id, str):
            # deep links carry ids as strings
            feature = next((f for f in self._features if str(f.id) == feature_id), None)
        return feature

    def __len__(self) -> int:
        return len(self._features)
