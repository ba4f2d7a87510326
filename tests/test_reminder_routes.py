import logging

import pytest

from mediconnect.features.reminders import get_reminder_scheduler
from mediconnect.features.reminders.alerts import DesktopAlerts
from mediconnect.features.reminders.display import ReminderDisplay
from mediconnect.features.reminders.service import ReminderScheduler


@pytest.fixture()
def api(client, store, clock):
	from mediconnect.main import app

	display = ReminderDisplay()
	store.on_change = display.refresh
	scheduler = ReminderScheduler(
		store,
		DesktopAlerts(notifications_enabled=False, sound_enabled=False),
		clock=clock,
		display=display,
	)
	app.dependency_overrides[get_reminder_scheduler] = lambda: scheduler
	yield client
	app.dependency_overrides.pop(get_reminder_scheduler, None)


def test_health(client):
	resp = client.get("/")
	assert resp.status_code == 200
	assert resp.json()["status"] == "ok"


def test_lifespan_reports_disabled_scheduler(caplog):
	from fastapi.testclient import TestClient
	from mediconnect.features.reminders import is_scheduler_running
	from mediconnect.main import app

	with caplog.at_level(logging.INFO, logger="main"):
		with TestClient(app):
			assert is_scheduler_running() is False
	assert "Reminder scheduler disabled by REMINDER_SCHEDULER_ENABLED" in caplog.text


def test_add_and_list(api):
	resp = api.post("/reminders", json={"medicine": "Metformin", "time": "20:30"})
	assert resp.status_code == 201
	body = resp.json()
	assert body["message"] == "⏰ Reminder set for Metformin at 20:30."
	reminder = body["reminder"]
	assert reminder["medicine"] == "Metformin"
	assert reminder["taken"] is False
	assert reminder["lastNotifiedDate"] is None

	listed = api.get("/reminders").json()
	assert [r["id"] for r in listed] == [reminder["id"]]


def test_add_rejects_missing_fields(api):
	resp = api.post("/reminders", json={"medicine": "", "time": "08:00"})
	assert resp.status_code == 400
	assert resp.json()["detail"] == "Enter medicine and time"
	assert api.get("/reminders").json() == []


def test_mark_taken(api):
	rid = api.post("/reminders", json={"medicine": "Aspirin", "time": "21:00"}).json()["reminder"]["id"]
	resp = api.post(f"/reminders/{rid}/taken")
	assert resp.status_code == 200
	assert resp.json()["taken"] is True
	assert resp.json()["lastNotifiedDate"] == "2024-01-01"

	assert api.post("/reminders/424242/taken").status_code == 404


def test_delete(api):
	rid = api.post("/reminders", json={"medicine": "Aspirin", "time": "21:00"}).json()["reminder"]["id"]
	assert api.delete(f"/reminders/{rid}").json() == {"status": "ok", "deleted": True}
	assert api.delete(f"/reminders/{rid}").json() == {"status": "ok", "deleted": False}
	assert api.get("/reminders").json() == []


def test_view_is_escaped_and_refreshed(api):
	assert "No reminders yet." in api.get("/reminders/view").text

	api.post("/reminders", json={"medicine": "<b>Aspirin</b>", "time": "21:00"})
	html = api.get("/reminders/view").text
	assert "&lt;b&gt;Aspirin&lt;/b&gt;" in html
	assert "<b>Aspirin</b>" not in html
	assert 'data-action="taken"' in html and "⏳" in html


def test_due_reminder_fires_on_add_and_prompts_drain(api):
	resp = api.post("/reminders", json={"medicine": "Aspirin", "time": "08:00"})
	assert resp.status_code == 201

	listed = api.get("/reminders").json()
	assert listed[0]["taken"] is True
	assert listed[0]["lastNotifiedDate"] == "2024-01-01"
	assert "✅" in api.get("/reminders/view").text

	assert api.get("/reminders/prompts").json() == {"prompts": ["⏰ Medicine Reminder: Aspirin at 08:00"]}
	assert api.get("/reminders/prompts").json() == {"prompts": []}
