import pytest
from pydantic import ValidationError

from storyseed_core.validation import InputSanitizer, JudgeScore, PersonalInfo, StoryDetails


def test_phone_digits_strips_formatting():
    assert InputSanitizer.phone_digits("+91 98765-43210") == "919876543210"
    assert InputSanitizer.phone_digits(None) == ""


def test_sanitize_name_keeps_unicode_letters():
    assert InputSanitizer.sanitize_name("  அனன்யா <b>  ") == "அனன்யா b"
    assert InputSanitizer.sanitize_name("O'Connor") == "O'Connor"


def test_personal_info_normalizes_fields():
    info = PersonalInfo(
        firstName=" Diya ",
        lastName="Patel",
        age="9",
        email=" Diya@Mail.COM ",
        city="Pune",
        eventId=42,
    )
    assert info.firstName == "Diya"
    assert info.age == 9
    assert info.email == "diya@mail.com"
    assert info.eventId == "42"


def test_personal_info_rejects_bad_email():
    with pytest.raises(ValidationError):
        PersonalInfo(firstName="A", lastName="B", age=10, email="nope", city="X", eventId="e1")


def test_story_details_rejects_script_and_bad_media_type():
    base = dict(
        storyTitle="Robot Friends",
        category="Sci-Fi",
        classLevel="Class 6",
        description="Two robots learn to dance.",
        mediaName="robots.mp4",
    )
    assert StoryDetails(**base, mediaContentType="Video/MP4").mediaContentType == "video/mp4"
    with pytest.raises(ValidationError):
        StoryDetails(**dict(base, storyTitle="<script>alert(1)</script>"))
    with pytest.raises(ValidationError):
        StoryDetails(**base, mediaContentType="application/x-msdownload")


def test_judge_score_bounds():
    assert JudgeScore(registrationId="r1", judgeId="j1", score=0).score == 0
    assert JudgeScore(registrationId="r1", judgeId="j1", score=10, feedback="  ").feedback is None
    with pytest.raises(ValidationError):
        JudgeScore(registrationId="r1", judgeId="j1", score=-1)
