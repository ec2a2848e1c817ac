import pytest
from fastapi.testclient import TestClient

from bughunter.core.config import Settings
from bughunter.core.deps import get_jira_client
from bughunter.core.errors import (
    TrackerEndpointRemoved,
    TrackerRequestError,
    TrackerTransportError,
)
from bughunter.main import create_app
from bughunter.models.jira import Issue, IssueCreateResult, SearchPage
from bughunter.routes.jira import bugs_jql


class FakeJira:
    def __init__(self, pages=None, error=None):
        self.pages = list(pages or [])
        self.error = error
        self.created = []
        self.searches = []

    def browse_url(self, key):
        return f"https://acme.atlassian.net/browse/{key}"

    async def create_issue(self, req):
        if self.error:
            raise self.error
        self.created.append(req)
        return IssueCreateResult(id="1", key="COD-9", self_link="https://x/1")

    async def get_issue(self, key):
        if self.error:
            raise self.error
        return Issue.model_validate(
            {
                "id": "1",
                "key": key,
                "fields": {
                    "summary": "Crash",
                    "description": {
                        "type": "doc",
                        "content": [{"type": "paragraph", "content": [{"type": "text", "text": "boom"}]}],
                    },
                    "issuetype": {"name": "Bug"},
                },
            }
        )

    async def search(self, jql, start_at=0, max_results=50):
        self.searches.append((jql, start_at, max_results))
        if self.error:
            raise self.error
        return self.pages.pop(0)


def _page(start, count, total):
    return SearchPage(
        start_at=start,
        max_results=count,
        total=total,
        issues=[Issue(id=str(n), key=f"COD-{n}") for n in range(start, start + count)],
    )


@pytest.fixture
def jira():
    return FakeJira()


@pytest.fixture
def client(jira):
    app = create_app()
    app.dependency_overrides[get_jira_client] = lambda: jira
    return TestClient(app)


def test_create_issue_created(client, jira):
    r = client.post(
        "/api/jira/issue",
        json={"projectKey": "COD", "summary": "NPE", "priority": "High", "labels": ["bug"]},
    )
    assert r.status_code == 201
    assert r.headers["location"] == "/api/jira/issue/COD-9"
    data = r.json()
    assert data["key"] == "COD-9"
    assert data["browse_url"] == "https://acme.atlassian.net/browse/COD-9"
    assert jira.created[0].priority == "High"


def test_create_issue_missing_summary_is_400(client, jira):
    r = client.post("/api/jira/issue", json={"projectKey": "COD", "summary": " "})
    assert r.status_code == 400
    assert "Summary" in r.json()["detail"]
    assert jira.created == []


def test_create_issue_tracker_error_is_502(client, jira):
    jira.error = TrackerRequestError(500, "oops")
    r = client.post("/api/jira/issue", json={"projectKey": "COD", "summary": "x"})
    assert r.status_code == 502


def test_get_issue_maps_fields(client):
    r = client.get("/api/jira/issue/COD-3")
    assert r.status_code == 200
    data = r.json()
    assert data["key"] == "COD-3"
    assert data["type"] == "Bug"
    assert data["description"] == "boom"


def test_get_issue_not_found(client, jira):
    jira.error = TrackerRequestError(404, "Issue does not exist")
    r = client.get("/api/jira/issue/COD-404")
    assert r.status_code == 404


def test_bugs_fetches_every_page(client, jira):
    jira.pages = [_page(0, 50, 70), _page(50, 20, 70)]
    r = client.get("/api/jira/issues/bugs", params={"projectKey": "COD"})
    assert r.status_code == 200
    assert len(r.json()) == 70
    assert jira.searches[0][0] == "project = COD AND issuetype = Bug ORDER BY created DESC"
    assert [s[1] for s in jira.searches] == [0, 50]


@pytest.mark.parametrize("param", ["project_key", "projectKey"])
def test_bugs_filters_by_project_key_either_spelling(client, jira, param):
    jira.pages = [_page(0, 2, 2)]
    r = client.get("/api/jira/issues/bugs", params={param: "COD"})
    assert r.status_code == 200
    assert jira.searches[0][0] == "project = COD AND issuetype = Bug ORDER BY created DESC"


def test_bugs_rejects_injected_snake_case_project_key(client, jira):
    r = client.get("/api/jira/issues/bugs", params={"project_key": "COD OR 1=1"})
    assert r.status_code == 400
    assert jira.searches == []


def test_bugs_rejects_injected_project_key(client, jira):
    r = client.get("/api/jira/issues/bugs", params={"projectKey": "COD OR 1=1"})
    assert r.status_code == 400
    assert jira.searches == []


def test_bugs_jql_without_project():
    assert bugs_jql(None) == "issuetype = Bug ORDER BY created DESC"
    assert bugs_jql("ABC_1") == "project = ABC_1 AND issuetype = Bug ORDER BY created DESC"


def test_all_issues_endpoint_removed_is_410(client, jira):
    jira.error = TrackerEndpointRemoved(410, "gone")
    r = client.get("/api/jira/issues", params={"jql": "project = COD"})
    assert r.status_code == 410


def test_all_issues_transport_error_is_504(client, jira):
    jira.error = TrackerTransportError("unreachable")
    r = client.get("/api/jira/issues", params={"jql": "project = COD"})
    assert r.status_code == 504


def test_all_issues_failure_returns_no_partial_list(client, jira):
    class FailingSecondPage(FakeJira):
        async def search(self, jql, start_at=0, max_results=50):
            if start_at:
                raise TrackerRequestError(500, "boom")
            return _page(0, 10, 30)

    app = create_app()
    app.dependency_overrides[get_jira_client] = lambda: FailingSecondPage()
    r = TestClient(app).get("/api/jira/issues", params={"jql": "x", "page_size": 10})
    assert r.status_code == 502
    assert "detail" in r.json()


def test_search_single_page(client, jira):
    jira.pages = [_page(10, 5, 40)]
    r = client.get("/api/jira/search", params={"jql": "x", "start_at": 10, "max_results": 5})
    assert r.status_code == 200
    data = r.json()
    assert data["startAt"] == 10
    assert data["total"] == 40
    assert data["returned"] == 5
    assert jira.searches == [("x", 10, 5)]


def test_jira_not_configured_is_503():
    r = TestClient(create_app()).get("/api/jira/issues", params={"jql": "x"})
    assert r.status_code == 503


def test_page_size_comes_from_app_settings(jira):
    app = create_app(Settings(_env_file=None, jira_page_size=10))
    app.dependency_overrides[get_jira_client] = lambda: jira
    client = TestClient(app)

    jira.pages = [_page(0, 3, 3), _page(0, 3, 3), _page(0, 3, 3)]
    client.get("/api/jira/issues/bugs")
    client.get("/api/jira/issues", params={"jql": "x"})
    client.get("/api/jira/search", params={"jql": "x"})

    assert [s[2] for s in jira.searches] == [10, 10, 10]


def test_explicit_page_size_overrides_setting(jira):
    app = create_app(Settings(_env_file=None, jira_page_size=10))
    app.dependency_overrides[get_jira_client] = lambda: jira
    jira.pages = [_page(0, 3, 3)]

    TestClient(app).get("/api/jira/issues", params={"jql": "x", "page_size": 25})

    assert jira.searches[0][2] == 25
