from __future__ import annotations

from typing import Optional, Protocol

from tqdm import tqdm


class ProgressSink(Protocol):
    def start(self, total: int) -> None:
        ...

    def tick(self) -> None:
        ...

    def close(self) -> None:
        ...


class NullProgress:
    def start(self, total: int) -> None:
        pass

    def tick(self) -> None:
        pass

    def close(self) -> None:
        pass


class TqdmProgress:
    """Terminal progress bar: [=====     ] 12/40 images (30%) remaining 00:41"""

    BAR_FORMAT = "[{bar:30}] {n_fmt}/{total_fmt} images ({percentage:3.0f}%) remaining {remaining}"

    def __init__(self, **tqdm_kwargs) -> None:
        self._kwargs = tqdm_kwargs
        self._bar: Optional[tqdm] = None

    def start(self, total: int) -> None:
        self._bar = tqdm(total=total, bar_format=self.BAR_FORMAT, ascii=" =", **self._kwargs)

    def tick(self) -> None:
        if self._bar is not None:
            self._bar.update(1)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
