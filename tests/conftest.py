"""Shared fixtures; also puts the project root on sys.path so the flat
modules import without an editable install."""

import json
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


SAMPLE_CHANGESETS = [
    {
        "ChangesetId": 1,
        "Comments": "first",
        "CommittedBy": "alice",
        "CommittedDate": "2017-03-01T10:00:00",
        "WorkItems": [{"WorkItemId": 10, "WorkItemTitle": "Fix bug"}],
    },
    {
        "ChangesetId": 2,
        "WorkItems": [
            {"WorkItemId": 10, "WorkItemTitle": "Fix bug"},
            {"WorkItemId": 11, "WorkItemTitle": "Add feature"},
        ],
    },
]


@pytest.fixture
def sample_changesets():
    return json.loads(json.dumps(SAMPLE_CHANGESETS))


@pytest.fixture
def config_dir(tmp_path):
    """A directory holding a minimal tfsinfo2html.yaml."""
    d = tmp_path / "conf"
    d.mkdir()
    (d / "tfsinfo2html.yaml").write_text(
        "tfsrequest:\n"
        "  serviceurl: http://reports.example.test/api/changesets\n"
        "  tfsurl: http://tfs.example.test:8080/tfs/DefaultCollection\n"
        "  projecturl: http://tfs.example.test:8080/tfs/DefaultCollection/Main\n"
        "  user: DOMAIN\\builder\n"
        "  password: s3cret\n"
        "  startdate: 2017-03-01\n"
        "  enddate: 2017-03-31\n",
        encoding="utf-8",
    )
    return d


class RecordingService:
    """httpx handler that records requests and replies with a fixed body."""

    def __init__(self, body=b"[]", status_code=200):
        self.body = body
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, (bytes, str)):
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def service(sample_changesets):
    return RecordingService(body=sample_changesets)


@pytest.fixture
def make_service():
    return RecordingService
