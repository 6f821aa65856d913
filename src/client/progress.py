from typing import Callable, List

from src.client.store import BoardStateStore
from src.schemas.progress import ProgressReport
from src.services.progress_service import compute_progress


class ProgressTracker:
    """Recomputes the project progress whenever the store changes"""

    def __init__(self, store: BoardStateStore):
        self.store = store
        self.report = ProgressReport()
        self._observers: List[Callable[[ProgressReport], None]] = []
        self._remove = store.add_listener(self.recompute)
        self.recompute()

    def recompute(self) -> ProgressReport:
        self.report = compute_progress(
            self.store.ordered_columns(),
            self.store.items.values(),
            self.store.tasks.values(),
        )
        for observer in list(self._observers):
            observer(self.report)
        return self.report

    def on_change(self, observer: Callable[[ProgressReport], None]):
        self._observers.append(observer)

    def close(self):
        self._remove()
        self._observers.clear()
