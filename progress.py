"""Progress tracking for CLI runs."""

import time


class ProgressRenderer:
    """Minimal in-terminal progress bar for CLI runs."""

    def __init__(self, enable: bool = True, width: int = 40):
        self.enable = enable
        self.width = width
        self.reset(0)

    def reset(self, total: int) -> None:
        self.total = max(total, 0)
        self.failed = 0
        self.with_foreground = 0
        self.start = time.time()
        self.last_line = ""

    def update(
        self,
        current: int,
        uid: int,
        roi_seconds: float = 0.0,
        *,
        failed: bool = False,
        has_foreground: bool = False,
    ) -> None:
        if failed:
            self.failed += 1
        if has_foreground:
            self.with_foreground += 1
        if not self.enable or self.total <= 0:
            return

        pct = current / self.total if self.total else 0
        filled = int(self.width * pct)
        bar = "#" * filled + "-" * (self.width - filled)
        elapsed = time.time() - self.start

        line = (
            f"[{bar}] {current}/{self.total} "
            f"uid:{uid} {roi_seconds:.2f}s "
            f"failed:{self.failed} blob:{self.with_foreground} "
            f"elapsed:{elapsed:.1f}s"
        )

        # Minimize flicker by only rewriting when content changes
        if line != self.last_line:
            print("\r" + line, end="", flush=True)
            self.last_line = line

        if current >= self.total:
            print()
