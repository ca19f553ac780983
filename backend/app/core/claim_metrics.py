from dataclasses import dataclass, field


@dataclass
class MetricBucket:
    total: int = 0
    errors: int = 0
    latency_total_ms: float = 0.0

    def record(self, duration_ms: float, error: bool) -> None:
        self.total += 1
        if error:
            self.errors += 1
        self.latency_total_ms += duration_ms

    def snapshot(self) -> dict[str, float | int]:
        avg = self.latency_total_ms / self.total if self.total else 0.0
        return {
            "total": self.total,
            "errors": self.errors,
            "avg_latency_ms": round(avg, 2),
        }


@dataclass
class ClaimMetrics:
    attempts: MetricBucket = field(default_factory=MetricBucket)
    succeeded: int = 0
    conflicts: int = 0
    rejected: int = 0

    def record_success(self, duration_ms: float) -> None:
        self.attempts.record(duration_ms, error=False)
        self.succeeded += 1

    def record_conflict(self, duration_ms: float) -> None:
        self.attempts.record(duration_ms, error=False)
        self.conflicts += 1

    def record_rejected(self, duration_ms: float) -> None:
        self.attempts.record(duration_ms, error=True)
        self.rejected += 1

    def snapshot(self) -> dict[str, object]:
        return {
            "attempts": self.attempts.snapshot(),
            "succeeded": self.succeeded,
            "conflicts": self.conflicts,
            "rejected": self.rejected,
        }
