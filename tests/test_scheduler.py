from garge.database import settings
from garge.services import scheduler


def test_scheduler_stays_off_when_processing_disabled(monkeypatch):
    monkeypatch.setattr(settings, "automation_processing_enabled", False)
    scheduler.start_scheduler()

    assert scheduler.scheduler.running is False
    scheduler.stop_scheduler()
