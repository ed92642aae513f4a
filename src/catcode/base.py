from __future__ import annotations

from typing import List

from .dataset import Dataset


class Transformer:
    """Simple fit/transform interface for catcode datasets.

    Subclasses should implement fit(self, dataset: Dataset) -> "Transformer",
    transform(self, dataset: Dataset) -> Dataset.
    """

    feature_names_in_: List[str] | None = None
    feature_names_out_: List[str] | None = None

    def fit(self, dataset: Dataset) -> "Transformer":  # pragma: no cover
        raise NotImplementedError

    def transform(self, dataset: Dataset) -> Dataset:  # pragma: no cover
        raise NotImplementedError

    def fit_transform(self, dataset: Dataset) -> Dataset:
        return self.fit(dataset).transform(dataset)

    def get_feature_names_out(self) -> List[str]:
        names = self.feature_names_out_
        if names is None:
            return []
        return list(names)
