"""
Accumulator tests: per-identity crediting, scoring weights and order independence.
"""
import itertools
import unittest

from aggregate.models import ContributorMetric, UNKNOWN_IDENTITY
from normalize.models import RawCommit, RawPullRequest
from scoring.metrics import accumulate, accumulate_into, accumulate_payloads


class TestAccumulate(unittest.TestCase):
    def test_commits_and_reviewed_pull_request(self):
        commits = [RawCommit('alice', 'a1'), RawCommit('alice', 'a2')]
        prs = [RawPullRequest('bob', 1, requested_reviewers=['alice'])]
        ledger = accumulate(commits, prs)
        self.assertEqual(ledger['alice'], ContributorMetric(commits=2, pull_requests=0, reviews=1, score=0.3))
        self.assertEqual(ledger['bob'], ContributorMetric(commits=0, pull_requests=1, reviews=0, score=1.0))
        self.assertEqual(set(ledger), {'alice', 'bob'})

    def test_empty_inputs_give_empty_ledger(self):
        self.assertEqual(accumulate([], []), {})
        self.assertEqual(accumulate_payloads([], []), {})

    def test_reviewer_only_identity_is_present(self):
        prs = [RawPullRequest('bob', 1, requested_reviewers=['dave'])]
        ledger = accumulate([], prs)
        dave = ledger['dave']
        self.assertEqual(dave.reviews, 1)
        self.assertEqual(dave.commits, 0)
        self.assertEqual(dave.pull_requests, 0)
        self.assertAlmostEqual(dave.score, 0.1)

    def test_missing_author_falls_back_to_unknown(self):
        ledger = accumulate([RawCommit(None, 'x')], [RawPullRequest(None, 2)])
        self.assertEqual(ledger[UNKNOWN_IDENTITY], ContributorMetric(commits=1, pull_requests=1, reviews=0, score=1.1))

    def test_author_reviewing_own_pull_request_is_credited_both_ways(self):
        ledger = accumulate([], [RawPullRequest('erin', 3, requested_reviewers=['erin', 'frank'])])
        self.assertEqual(ledger['erin'], ContributorMetric(pull_requests=1, reviews=1, score=1.1))
        self.assertEqual(ledger['frank'].reviews, 1)

    def test_pull_request_timestamps_are_not_refiltered(self):
        old = RawPullRequest('bob', 4, created_at='2001-01-01T00:00:00Z')
        ledger = accumulate([], [old])
        self.assertEqual(ledger['bob'].pull_requests, 1)

    def test_order_independence(self):
        commits = [RawCommit('alice'), RawCommit('bob'), RawCommit(None), RawCommit('alice')]
        prs = [
            RawPullRequest('bob', 1, requested_reviewers=['alice', 'carol']),
            RawPullRequest('alice', 2, requested_reviewers=['bob']),
            RawPullRequest('carol', 3),
        ]
        expected = accumulate(commits, prs)
        for commit_order in itertools.permutations(commits):
            for pr_order in itertools.permutations(prs):
                self.assertEqual(accumulate(list(commit_order), list(pr_order)), expected)

    def test_custom_weights(self):
        weights = {'commit': 1.0, 'pull_request': 0.0, 'review': 2.0}
        ledger = accumulate([RawCommit('alice')], [RawPullRequest('bob', 1, requested_reviewers=['alice'])], weights=weights)
        self.assertEqual(ledger['alice'].score, 3.0)
        self.assertEqual(ledger['bob'].score, 0.0)

    def test_weights_below_a_millionth_still_count(self):
        ledger = accumulate([RawCommit('alice')] * 1000, [], weights={'commit': 4e-7})
        self.assertEqual(ledger['alice'].commits, 1000)
        self.assertAlmostEqual(ledger['alice'].score, 0.0004, places=12)

    def test_identity_policy(self):
        commits = [RawCommit('Alice'), RawCommit('alice')]
        self.assertEqual(set(accumulate(commits, [])), {'Alice', 'alice'})
        folded = accumulate(commits, [], identity_policy='lower')
        self.assertEqual(folded['alice'].commits, 2)
        # the sentinel is left untouched
        self.assertIn(UNKNOWN_IDENTITY, accumulate([RawCommit(None)], [], identity_policy='lower'))
        with self.assertRaises(ValueError):
            accumulate(commits, [], identity_policy='alias')

    def test_accumulate_into_does_not_mutate(self):
        base = accumulate([RawCommit('alice')], [])
        extended = accumulate_into(base, [RawCommit('alice')], [RawPullRequest('alice', 1)])
        self.assertEqual(base['alice'].commits, 1)
        self.assertEqual(extended['alice'], ContributorMetric(commits=2, pull_requests=1, score=1.2))

    def test_batched_accumulation_matches_single_pass(self):
        commits = [RawCommit('alice'), RawCommit('bob'), RawCommit('alice')]
        prs = [RawPullRequest('bob', 1, requested_reviewers=['alice'])]
        batched = accumulate_into(accumulate(commits[:1], []), commits[1:], prs)
        self.assertEqual(batched, accumulate(commits, prs))

    def test_payloads(self):
        raw_commits = [{'sha': 'a', 'author': {'login': 'alice'}}, {'sha': 'b', 'author': None}]
        raw_prs = [{'number': 1, 'user': {'login': 'bob'}, 'requested_reviewers': [{'login': 'alice'}]}]
        ledger = accumulate_payloads(raw_commits, raw_prs)
        self.assertEqual(ledger['alice'], ContributorMetric(commits=1, reviews=1, score=0.2))
        self.assertEqual(ledger[UNKNOWN_IDENTITY].commits, 1)


class TestContributorMetric(unittest.TestCase):
    def test_rejects_negative_fields(self):
        with self.assertRaises(ValueError):
            ContributorMetric(commits=-1)

    def test_addition(self):
        total = ContributorMetric(1, 2, 3, 0.1) + ContributorMetric(1, 0, 0, 0.2)
        self.assertEqual(total, ContributorMetric(2, 2, 3, 0.3))
        self.assertEqual(total.to_dict(), {'commits': 2, 'pull_requests': 2, 'reviews': 3, 'score': 0.3})

    def test_is_unhashable(self):
        with self.assertRaises(TypeError):
            hash(ContributorMetric(1, 0, 0, 0.1))
        with self.assertRaises(TypeError):
            {ContributorMetric()}


if __name__ == '__main__':
    unittest.main()
