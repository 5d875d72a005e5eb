import pytest

from story_suite.config import Settings
from story_suite.errors import (
    CompletionServiceError,
    ConfigError,
    FetchError,
    InvalidInputError,
    NoDelimitersError,
    ParseError,
)
from story_suite.pipeline import StoryPipeline, validate_article_url

from conftest import (
    ARTICLE_URL,
    FakeCompletion,
    FakeResponse,
    FakeSession,
    completion_text,
    html_session,
    story_payload,
)


def _pipeline(settings, session=None, completion=None):
    return StoryPipeline(
        settings,
        completion_client=completion or FakeCompletion(),
        session=session or html_session(),
    )


def test_end_to_end(settings):
    session = html_session()
    completion = FakeCompletion()
    story = _pipeline(settings, session, completion).process(ARTICLE_URL)

    assert story.title == "Rose Breeders Unveil New Variety"
    assert story.source == "Garden Weekly"
    assert story.date == "April 9, 2025"
    assert [s.id for s in story.fact_sections] == [
        "rose-development-details",
        "market-availability-and-pricing",
        "breeders-goals",
    ]
    assert story.fact_sections[2].title == "Breeder's Goals"
    assert story.quotes[0].speaker == "Maria Lopez"
    assert story.engagement_score.total == 13
    assert story.primary_image_url == "https://x.com/img/a.jpg"
    assert story.original_url == ARTICLE_URL

    prompt = completion.prompts[0]
    assert "Evening Ember" in prompt
    assert "Garden Weekly" in prompt
    assert "April 9, 2025" in prompt
    assert "Jane Doe" in prompt
    assert session.calls[0][0] == ARTICLE_URL


def test_malformed_score_does_not_fail_request(settings):
    payload = story_payload(engagementScore={"s": 9, "total": "lots"})
    completion = FakeCompletion(completion_text(payload))
    story = _pipeline(settings, completion=completion).process(ARTICLE_URL)

    assert story.engagement_score is None
    assert len(story.fact_sections) == 3


def test_model_gaps_filled_from_page(settings):
    payload = story_payload(title="", author=None, date="Date not specified")
    story = _pipeline(settings, completion=FakeCompletion(completion_text(payload))).process(
        ARTICLE_URL
    )
    assert "Rose Breeders Unveil New Variety" in story.title
    assert story.author == "Jane Doe"
    assert story.date == "April 9, 2025"


def test_missing_key_fails_before_fetch():
    session = html_session()
    pipeline = StoryPipeline(Settings(OPENAI_API_KEY=None), session=session)

    assert pipeline.completion_client is None
    with pytest.raises(ConfigError):
        pipeline.process(ARTICLE_URL)
    assert session.calls == []


@pytest.mark.parametrize("url", ["", "   ", None, "not a url", "ftp://x.com/a", "https://", 42])
def test_invalid_urls(settings, url):
    session = html_session()
    with pytest.raises(InvalidInputError):
        _pipeline(settings, session).process(url)
    assert session.calls == []


def test_validate_article_url_messages():
    with pytest.raises(InvalidInputError, match="Article URL is required"):
        validate_article_url("")
    with pytest.raises(InvalidInputError, match="Invalid URL format provided"):
        validate_article_url("x.com/news/1")
    assert validate_article_url("HTTPS://x.com/a") == "HTTPS://x.com/a"


def test_fetch_failure_stops_pipeline(settings):
    completion = FakeCompletion()
    session = FakeSession(FakeResponse(status_code=403, reason="Forbidden"))
    with pytest.raises(FetchError) as excinfo:
        _pipeline(settings, session, completion).process(ARTICLE_URL)
    assert excinfo.value.status_code == 403
    assert completion.prompts == []


def test_completion_failure_propagates(settings):
    completion = FakeCompletion(exc=CompletionServiceError("service down"))
    with pytest.raises(CompletionServiceError):
        _pipeline(settings, completion=completion).process(ARTICLE_URL)


@pytest.mark.parametrize(
    "text, error",
    [
        ("I could not analyze this article.", NoDelimitersError),
        ('{"title": "x",, }', ParseError),
    ],
)
def test_unrecoverable_output(settings, text, error):
    with pytest.raises(error):
        _pipeline(settings, completion=FakeCompletion(text)).process(ARTICLE_URL)
