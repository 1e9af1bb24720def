"""
Tests for daily mood check-ins
"""
from datetime import date

import pytest

from ourlittleworld.application.errors import Forbidden, ValidationError
from ourlittleworld.application.moods import (
    DEFAULT_MOOD_EMOJI, SubmitDailyMoodUseCase, UpdateTodayMoodMessageUseCase, get_today_moods,
)
from ourlittleworld.infrastructure.db.models import DailyMoodModel

TODAY = date(2026, 3, 14)


def test_one_mood_per_person_per_day(db_session, couple, partner_a):
    submit = SubmitDailyMoodUseCase(db_session)
    submit.execute(partner_a, "😊", note="good day", message="miss you", today=TODAY)
    mood = submit.execute(partner_a, "😴", today=TODAY)

    assert db_session.query(DailyMoodModel).count() == 1
    assert mood.mood_emoji == "😴"
    assert mood.note is None
    assert mood.meta == {"message": "miss you"}


def test_partner_sees_both_moods(db_session, couple, partner_a, partner_b):
    SubmitDailyMoodUseCase(db_session).execute(partner_a, "😊", today=TODAY)
    SubmitDailyMoodUseCase(db_session).execute(partner_b, "🥰", today=TODAY)
    SubmitDailyMoodUseCase(db_session).execute(partner_b, "😐", today=date(2026, 3, 13))

    moods = get_today_moods(db_session, partner_b, couple.id, today=TODAY)

    assert {m.user_id for m in moods} == {partner_a.id, partner_b.id}


def test_message_creates_default_mood_and_can_be_cleared(db_session, couple, partner_a):
    update = UpdateTodayMoodMessageUseCase(db_session)

    mood = update.execute(partner_a, "thinking of you", today=TODAY)
    assert mood.mood_emoji == DEFAULT_MOOD_EMOJI
    assert mood.meta == {"message": "thinking of you"}

    mood = update.execute(partner_a, "", today=TODAY)
    assert mood.meta is None


def test_mood_validation(db_session, couple, partner_a, outsider, user_factory):
    with pytest.raises(ValidationError):
        SubmitDailyMoodUseCase(db_session).execute(partner_a, "  ", today=TODAY)
    with pytest.raises(Forbidden):
        SubmitDailyMoodUseCase(db_session).execute(user_factory("solo@example.com"), "😊")
    with pytest.raises(Forbidden):
        get_today_moods(db_session, outsider, couple.id)
