import tracker.history as history
import tracker.utils.time as tutime

class FakeClock:
    """Frozen epoch clock; advance() moves it forward."""
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, secs: float) -> None:
        self.now += secs

def install(monkeypatch, clock: FakeClock) -> FakeClock:
    # history imports utc_now_s by name; oldest_allowed resolves it in utils.time
    monkeypatch.setattr(tutime, "utc_now_s", clock)
    monkeypatch.setattr(history, "utc_now_s", clock)
    return clock
