"""MNIST items and batching with the usual normalisation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

__all__ = ["MnistItem", "MnistBatch", "MnistBatcher", "MNIST_MEAN", "MNIST_STD", "IMAGE_SIZE"]

MNIST_MEAN = 0.1307
MNIST_STD = 0.3081
IMAGE_SIZE = 28


@dataclass(frozen=True)
class MnistItem:
    """One image of 28x28 pixel values in ``[0, 255]`` and its label."""

    image: np.ndarray
    label: int


@dataclass
class MnistBatch:
    """Normalised images ``[batch, 28, 28]`` and integer targets ``[batch]``."""

    images: np.ndarray
    targets: np.ndarray


def _normalise(image: np.ndarray) -> np.ndarray:
    pixels = np.asarray(image, dtype=np.float32)
    if pixels.size != IMAGE_SIZE * IMAGE_SIZE:
        raise ValueError(f"image must hold {IMAGE_SIZE * IMAGE_SIZE} pixels, got {pixels.size}")
    pixels = pixels.reshape(IMAGE_SIZE, IMAGE_SIZE)
    return ((pixels / 255.0) - MNIST_MEAN) / MNIST_STD


@dataclass(frozen=True)
class MnistBatcher:
    """Turns MNIST items into a :class:`MnistBatch`."""

    def batch(self, items: Iterable[MnistItem]) -> MnistBatch:
        """Scale pixels to ``[0, 1]``, standardise them and collect the labels."""
        items = list(items)
        if not items:
            raise ValueError("cannot batch an empty list of items")
        images = np.stack([_normalise(item.image) for item in items]).astype(np.float32)
        targets = np.array([item.label for item in items], dtype=np.int64)
        return MnistBatch(images=images, targets=targets)