from __future__ import annotations

import threading
import unittest
from unittest import mock

import requests

from contribute.github_api import (
    FetchCancelled,
    GitHubClient,
    HostError,
    NetworkError,
    RateLimited,
    token_from_env,
)
from contribute.rate_limit import RateLimitTracker
from contribute.types import RepoRef

from github_fakes import FakeSearchSession, issue_item, make_response

REPO = RepoRef("github.com", "octo", "lib")


def _ten(start: int) -> list[dict]:
    return [issue_item(n) for n in range(start, start + 10)]


class PaginationTest(unittest.TestCase):
    def test_three_pages_of_ten(self) -> None:
        session = FakeSearchSession(pages={"octo/lib": [_ten(1), _ten(11), _ten(21)]})
        client = GitHubClient(session=session)

        pages = list(client.search_pending_issues(REPO))

        numbers = [item["number"] for page in pages for item in page]
        self.assertEqual(numbers, list(range(1, 31)))
        self.assertEqual(session.requests_for("octo/lib"), [1, 2, 3])

    def test_stops_when_no_next_link(self) -> None:
        # Page size says nothing; only the missing next link ends the loop.
        session = FakeSearchSession(pages={"octo/lib": [_ten(1)]})
        client = GitHubClient(session=session)

        pages = list(client.search_pending_issues(REPO, per_page=10))

        self.assertEqual(len(pages), 1)
        self.assertEqual(session.requests_for("octo/lib"), [1])

    def test_page_cap(self) -> None:
        session = FakeSearchSession(pages={"octo/lib": [_ten(1)]}, always_next=True)
        client = GitHubClient(session=session)

        pages = list(client.search_pending_issues(REPO, max_pages=4))

        self.assertEqual(len(pages), 4)
        self.assertEqual(session.requests_for("octo/lib"), [1, 2, 3, 4])

    def test_cancel_stops_before_next_page(self) -> None:
        session = FakeSearchSession(pages={"octo/lib": [_ten(1), _ten(11), _ten(21)]})
        client = GitHubClient(session=session)
        cancel = threading.Event()

        pages = client.search_pending_issues(REPO, cancel=cancel)
        self.assertEqual(len(next(pages)), 10)
        cancel.set()
        with self.assertRaises(FetchCancelled):
            next(pages)
        self.assertEqual(session.requests_for("octo/lib"), [1])

    def test_first_request_carries_query(self) -> None:
        session = mock.Mock()
        session.headers = {}
        session.get.return_value = make_response(payload={"items": []})
        client = GitHubClient(session=session, timeout_s=3.0)

        list(client.search_pending_issues(REPO))

        url = session.get.call_args.args[0]
        kwargs = session.get.call_args.kwargs
        self.assertEqual(url, "https://api.github.com/search/issues")
        self.assertEqual(
            kwargs["params"]["q"], "repo:octo/lib type:issue state:open no:assignee"
        )
        self.assertEqual(kwargs["params"]["sort"], "updated")
        self.assertEqual(kwargs["params"]["order"], "desc")
        self.assertEqual(kwargs["params"]["per_page"], 100)
        self.assertEqual(kwargs["timeout"], 3.0)


class AuthTest(unittest.TestCase):
    def test_token_sets_bearer_header(self) -> None:
        session = FakeSearchSession()
        client = GitHubClient("s3cret", session=session)
        self.assertEqual(session.headers["Authorization"], "Bearer s3cret")
        self.assertTrue(client.authenticated)

    def test_anonymous(self) -> None:
        session = FakeSearchSession()
        client = GitHubClient(session=session)
        self.assertNotIn("Authorization", session.headers)
        self.assertFalse(client.authenticated)

    def test_token_from_env(self) -> None:
        with mock.patch.dict("os.environ", {"GH_TOKEN": "from-gh"}, clear=True):
            self.assertEqual(token_from_env(), "from-gh")
        with mock.patch.dict("os.environ", {"GITHUB_TOKEN": "a", "GH_TOKEN": "b"}, clear=True):
            self.assertEqual(token_from_env(), "a")
        with mock.patch.dict("os.environ", {}, clear=True):
            self.assertIsNone(token_from_env())


class ErrorMappingTest(unittest.TestCase):
    def _client(self, failure) -> tuple[GitHubClient, FakeSearchSession]:
        session = FakeSearchSession(failures={"octo/lib": failure})
        return GitHubClient(session=session), session

    def test_timeout_is_network_error(self) -> None:
        client, _ = self._client(requests.exceptions.Timeout("read timed out"))
        with self.assertRaises(NetworkError) as ctx:
            list(client.search_pending_issues(REPO))
        self.assertEqual(ctx.exception.repo, REPO)
        self.assertEqual(ctx.exception.kind, "network")

    def test_connection_error_is_network_error(self) -> None:
        client, _ = self._client(requests.exceptions.ConnectionError("refused"))
        with self.assertRaises(NetworkError):
            list(client.search_pending_issues(REPO))

    def test_server_error_is_host_error(self) -> None:
        client, _ = self._client(make_response(502, {"message": "Bad Gateway"}))
        with self.assertRaises(HostError) as ctx:
            list(client.search_pending_issues(REPO))
        self.assertEqual(ctx.exception.status_code, 502)

    def test_missing_repository_is_host_error(self) -> None:
        client, _ = self._client(make_response(422, {"message": "Validation Failed"}))
        with self.assertRaises(HostError) as ctx:
            list(client.search_pending_issues(REPO))
        self.assertEqual(ctx.exception.status_code, 422)

    def test_quota_exhausted_response(self) -> None:
        response = make_response(
            403,
            {"message": "API rate limit exceeded"},
            headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "4102444800"},
        )
        client, _ = self._client(response)
        with self.assertRaises(RateLimited) as ctx:
            list(client.search_pending_issues(REPO))
        self.assertEqual(ctx.exception.reset_at, 4102444800)
        self.assertTrue(client.tracker.is_exhausted())

    def test_secondary_rate_limit_does_not_exhaust_quota(self) -> None:
        response = make_response(
            403,
            {"message": "You have exceeded a secondary rate limit."},
            headers={"X-RateLimit-Remaining": "20"},
        )
        client, _ = self._client(response)
        with self.assertRaises(RateLimited):
            list(client.search_pending_issues(REPO))
        self.assertFalse(client.tracker.is_exhausted())

    def test_forbidden_without_rate_limit_is_host_error(self) -> None:
        client, _ = self._client(make_response(403, {"message": "Resource not accessible"}))
        with self.assertRaises(HostError):
            list(client.search_pending_issues(REPO))

    def test_malformed_payload(self) -> None:
        client, _ = self._client(make_response(200, {"message": "no items here"}))
        with self.assertRaises(HostError):
            list(client.search_pending_issues(REPO))


class RateLimitTest(unittest.TestCase):
    def test_no_request_once_exhausted(self) -> None:
        tracker = RateLimitTracker()
        tracker.mark_exhausted(reset_at=4102444800)
        session = FakeSearchSession(pages={"octo/lib": [_ten(1)]})
        client = GitHubClient(session=session, tracker=tracker)

        with self.assertRaises(RateLimited):
            list(client.search_pending_issues(REPO))
        self.assertEqual(session.calls, [])

    def test_quota_reaching_zero_stops_pagination(self) -> None:
        session = FakeSearchSession(
            pages={"octo/lib": [_ten(1), _ten(11), _ten(21)]},
            remaining=[1, 0],
        )
        client = GitHubClient(session=session)

        pages = client.search_pending_issues(REPO)
        self.assertEqual(len(next(pages)), 10)
        self.assertEqual(len(next(pages)), 10)
        with self.assertRaises(RateLimited):
            next(pages)
        self.assertEqual(session.requests_for("octo/lib"), [1, 2])


if __name__ == "__main__":
    unittest.main()
