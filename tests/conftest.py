import json

import pytest

from story_suite.config import Settings

PARAGRAPHS = [
    "Breeders at the Ashford nursery have unveiled a new climbing rose after nine years "
    "of cross-pollination trials, saying the variety resists black spot far better than "
    "the older cultivars gardeners grow today.",
    "The rose, named Evening Ember, opens a deep copper colour and fades to soft apricot "
    "over several days. Early testers reported a strong clove scent that lingers well "
    "into the evening, which is unusual for a repeat-flowering climber.",
    "Head breeder Maria Lopez said the team's goal was a plant that home gardeners could "
    "grow without spraying. \"We wanted something that looks after itself,\" she said, "
    "adding that trial beds were left untreated for three full seasons.",
    "The nursery plans to sell bare-root plants from November at a price of about twenty "
    "pounds each, with container plants following in spring. Garden centres across the "
    "region have already placed orders for the first harvest.",
    "Rose societies welcomed the launch but cautioned that disease resistance can vary "
    "with local climate. Several members said they would wait for results from northern "
    "trial grounds before recommending the variety widely.",
    "The breeders are already working on a shrub form of the same rose, which they hope "
    "to release within three years if the current trials continue to go well.",
]

ARTICLE_URL = "https://x.com/news/1"

ARTICLE_HTML = """<!doctype html>
<html>
<head>
<title>Rose Breeders Unveil New Variety | Garden Weekly</title>
<meta property="og:image" content="/img/a.jpg">
<meta property="og:site_name" content="Garden Weekly">
<meta property="article:published_time" content="2025-04-09T08:30:00Z">
<meta name="author" content="By Jane Doe">
<script>window.analytics = {"track": true};</script>
</head>
<body>
<nav><a href="/">Home</a> <a href="/news">News</a> <a href="/about">About</a></nav>
<article>
<h1>Rose Breeders Unveil New Variety</h1>
%s
</article>
<footer>Copyright Garden Weekly</footer>
</body>
</html>
""" % "\n".join(f"<p>{p}</p>" for p in PARAGRAPHS)


def story_payload(**overrides):
    base = {
        "title": "Rose Breeders Unveil New Variety",
        "source": "Garden Weekly",
        "author": "Jane Doe",
        "date": "April 9, 2025",
        "summary": "A nursery has launched Evening Ember, a disease-resistant climbing rose.",
        "highlights": [
            "Evening Ember took nine years to breed.",
            "It resists black spot without spraying.",
            "Bare-root plants go on sale in November.",
            "A shrub form is planned within three years.",
        ],
        "factSections": [
            {"title": "Rose Development: Details!", "content": "Nine years of trials."},
            {"title": "Market Availability and Pricing", "content": "About twenty pounds."},
            {"title": "Breeder's Goals", "content": "A rose that looks after itself."},
        ],
        "quotes": [
            {"text": "We wanted something that looks after itself", "speaker": "Maria Lopez"}
        ],
        "engagementScore": {
            "s": 3,
            "p": 2,
            "i": 1,
            "c": 3,
            "e": 4,
            "total": 13,
            "justification": {
                "s": "Short paragraphs.",
                "p": "Little direct address.",
                "i": "No calls to action.",
                "c": "Quotes a named breeder.",
                "e": "A clear human story.",
            },
        },
    }
    base.update(overrides)
    return base


def completion_text(payload=None):
    """Model-style output: prose around the object and over-escaped apostrophes."""
    body = json.dumps(payload or story_payload(), ensure_ascii=False).replace("'", "\\'")
    return f"Here is the JSON you asked for:\n{body}\nLet me know if you need anything else."


class FakeResponse:
    def __init__(
        self,
        status_code=200,
        body=b"",
        headers=None,
        reason="OK",
        encoding="utf-8",
        chunks=None,
        error=None,
    ):
        self.status_code = status_code
        self.reason = reason
        if headers is None:
            headers = {"content-type": "text/html; charset=utf-8"}
        self.headers = headers
        self.encoding = encoding
        self._chunks = chunks if chunks is not None else [body]
        self._error = error
        self.closed = False

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def iter_content(self, chunk_size=1):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self):
        pass


class FakeCompletion:
    def __init__(self, text=None, exc=None):
        self.text = text if text is not None else completion_text()
        self.exc = exc
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.exc is not None:
            raise self.exc
        return self.text


def html_session(html=ARTICLE_HTML, **kwargs):
    return FakeSession(FakeResponse(body=html.encode("utf-8"), **kwargs))


@pytest.fixture
def settings():
    return Settings(OPENAI_API_KEY="sk-test")
