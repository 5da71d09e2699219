from __future__ import annotations

import unittest

from contribute.aggregator import ResultSet, aggregate
from contribute.fetcher import RepoOutcome
from contribute.github_api import NetworkError, RateLimited
from contribute.types import Issue, RepoRef


def ref(name: str) -> RepoRef:
    return RepoRef("github.com", "octo", name)


def issues(repo: RepoRef, *numbers: int) -> tuple[Issue, ...]:
    return tuple(
        Issue(repo=repo, number=n, title=f"{repo.name} {n}", url=f"https://github.com/{repo.full_name}/issues/{n}")
        for n in numbers
    )


class AggregateTest(unittest.TestCase):
    def setUp(self) -> None:
        self.a, self.b = ref("a"), ref("b")
        # GitHub's own order, deliberately not sorted by number
        self.outcomes = {
            self.b: RepoOutcome(self.b, issues(self.b, 9, 8, 7, 6, 5)),
            self.a: RepoOutcome(self.a, issues(self.a, 5, 3, 4, 1, 2)),
        }

    def test_count_limit_takes_first_repository_first(self) -> None:
        result = aggregate([self.a, self.b], self.outcomes, count_limit=3)

        self.assertEqual(len(result), 3)
        self.assertEqual([(i.repo, i.number) for i in result], [(self.a, 5), (self.a, 3), (self.a, 4)])

    def test_no_limit_keeps_everything_in_repository_order(self) -> None:
        result = aggregate([self.a, self.b], self.outcomes)

        self.assertEqual(
            [(i.repo.name, i.number) for i in result],
            [("a", 5), ("a", 3), ("a", 4), ("a", 1), ("a", 2),
             ("b", 9), ("b", 8), ("b", 7), ("b", 6), ("b", 5)],
        )

    def test_limit_spanning_repositories(self) -> None:
        result = aggregate([self.b, self.a], self.outcomes, count_limit=7)
        self.assertEqual([i.number for i in result], [9, 8, 7, 6, 5, 5, 3])
        self.assertEqual(result.issues[-1].repo, self.a)

    def test_zero_limit(self) -> None:
        result = aggregate([self.a, self.b], self.outcomes, count_limit=0)
        self.assertEqual(result.issues, ())
        self.assertEqual(result.succeeded, 2)

    def test_negative_limit_rejected(self) -> None:
        with self.assertRaises(ValueError):
            aggregate([self.a], self.outcomes, count_limit=-1)

    def test_failures_reported_separately(self) -> None:
        error = NetworkError("timed out", self.b)
        outcomes = {
            self.a: self.outcomes[self.a],
            self.b: RepoOutcome(self.b, error=error),
        }

        result = aggregate([self.a, self.b], outcomes, count_limit=10)

        self.assertEqual([i.number for i in result], [5, 3, 4, 1, 2])
        self.assertEqual(dict(result.failures), {self.b: error})
        self.assertEqual(result.succeeded, 1)
        self.assertFalse(result.rate_limited)

    def test_rate_limited_flag(self) -> None:
        outcomes = {self.a: RepoOutcome(self.a, error=RateLimited("quota", self.a))}
        result = aggregate([self.a], outcomes)
        self.assertTrue(result.rate_limited)
        self.assertEqual(len(result), 0)

    def test_failures_follow_repository_order(self) -> None:
        c = ref("c")
        outcomes = {
            c: RepoOutcome(c, error=NetworkError("x", c)),
            self.a: RepoOutcome(self.a, error=NetworkError("y", self.a)),
        }
        result = aggregate([self.a, self.b, c], outcomes)
        self.assertEqual(list(result.failures), [self.a, c])

    def test_idempotent(self) -> None:
        first = aggregate([self.a, self.b], self.outcomes, count_limit=6)
        second = aggregate([self.a, self.b], self.outcomes, count_limit=6)
        self.assertEqual(first.issues, second.issues)
        self.assertEqual(dict(first.failures), dict(second.failures))
        self.assertEqual(first.succeeded, second.succeeded)

    def test_result_set_is_read_only(self) -> None:
        result = aggregate([self.a], self.outcomes)
        with self.assertRaises(TypeError):
            result.failures[self.b] = NetworkError("nope")  # type: ignore[index]
        self.assertIsInstance(result.issues, tuple)

    def test_empty(self) -> None:
        result = aggregate([], {})
        self.assertEqual(result.issues, ResultSet().issues)
        self.assertEqual(result.succeeded, 0)
        self.assertEqual(len(result.failures), 0)


if __name__ == "__main__":
    unittest.main()
