import json
import logging
import unittest

import httpx

logging.disable(logging.CRITICAL)


def _client(handler):
    from taskbridge.services.jira_client import JiraClient

    return JiraClient("https://example.atlassian.net/", "me@example.com", "tok",
                      transport=httpx.MockTransport(handler))


def _raw_issue(key, **fields):
    return {"id": "10001", "key": key, "fields": fields}


class JiraClientTests(unittest.TestCase):
    def test_search_paginates_with_token_and_parses_fields(self):
        from taskbridge.services.jira_client import SPRINT_FIELD

        seen = []

        def handler(request):
            seen.append(request)
            if request.url.params.get("nextPageToken") == "n2":
                return httpx.Response(200, json={"issues": [_raw_issue("DX-2", summary="Two")], "isLast": True})
            return httpx.Response(200, json={
                "issues": [_raw_issue(
                    "DX-1",
                    summary="One",
                    status={"name": "In Progress", "statusCategory": {"key": "indeterminate"}},
                    resolution=None,
                    priority={"id": "2"},
                    updated="2025-01-01T00:00:00.000+0000",
                    duedate="2025-02-01",
                    comment={"total": 1, "comments": [
                        {"id": "5", "body": {"type": "doc"}, "author": {"displayName": "Ann"}},
                    ]},
                    **{SPRINT_FIELD: [{"id": 1, "name": "S1", "state": "active"}]},
                )],
                "nextPageToken": "n2",
            })

        issues = _client(handler).search_issues("project = DX", ["summary"], max_results=200)

        self.assertEqual([i.key for i in issues], ["DX-1", "DX-2"])
        self.assertEqual(seen[0].url.path, "/rest/api/3/search/jql")
        self.assertEqual(seen[0].url.params["jql"], "project = DX")
        self.assertTrue(seen[0].headers["Authorization"].startswith("Basic "))
        first = issues[0]
        self.assertEqual(first.status_name, "In Progress")
        self.assertFalse(first.is_resolved)
        self.assertEqual(first.priority_id, "2")
        self.assertTrue(first.in_active_sprint())
        self.assertEqual(first.comments[0].author, "Ann")
        self.assertIsNone(issues[1].sprints)
        self.assertIsNone(issues[1].comments)

    def test_partial_comment_page_is_not_trusted(self):
        def handler(request):
            return httpx.Response(200, json={"issues": [_raw_issue(
                "DX-1", comment={"total": 3, "comments": [{"id": "1", "body": "x"}]},
                resolution={"name": "Done"},
            )]})

        issue = _client(handler).search_issues("project = DX")[0]

        self.assertIsNone(issue.comments)
        self.assertTrue(issue.is_resolved)

    def test_search_stops_at_max_results(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"issues": [_raw_issue("DX-1")], "nextPageToken": "more"})

        issues = _client(handler).search_issues("x", max_results=1)

        self.assertEqual(len(issues), 1)
        self.assertEqual(len(calls), 1)
        self.assertEqual(calls[0].url.params["maxResults"], "1")

    def test_create_and_update_issue(self):
        seen = []

        def handler(request):
            seen.append(request)
            if request.method == "POST":
                return httpx.Response(201, json={"id": "10002", "key": "DX-7"})
            return httpx.Response(204)

        client = _client(handler)
        issue = client.create_issue({"summary": "New"})
        client.update_issue("DX-7", {"summary": "Newer"})

        self.assertEqual((issue.key, issue.id, issue.summary), ("DX-7", "10002", "New"))
        self.assertEqual(json.loads(seen[0].content), {"fields": {"summary": "New"}})
        self.assertEqual(seen[1].method, "PUT")
        self.assertEqual(seen[1].url.path, "/rest/api/3/issue/DX-7")

    def test_resolve_transition_sets_resolution(self):
        posted = []

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json={"transitions": [
                    {"id": "11", "name": "Start", "to": {"name": "In Progress"}},
                    {"id": "31", "name": "Close", "to": {"name": "Closed"}},
                    {"id": "41", "name": "Finish", "to": {"name": "Done"}},
                ]})
            posted.append(json.loads(request.content))
            return httpx.Response(204)

        client = _client(handler)
        client.transition_to("DX-1", "done", resolve=True)
        client.transition_to("DX-1", "Closed")
        client.transition_to("DX-1", "In Progress")

        self.assertEqual(posted[0], {"transition": {"id": "41"}, "fields": {"resolution": {"name": "Done"}}})
        self.assertEqual(posted[1], {"transition": {"id": "31"}})
        self.assertEqual(posted[2], {"transition": {"id": "11"}})

    def test_transition_without_match_raises(self):
        def handler(request):
            return httpx.Response(200, json={"transitions": []})

        with self.assertRaises(LookupError):
            _client(handler).transition_to("DX-1", "Blocked")

    def test_list_comments_paginates(self):
        def handler(request):
            start = int(request.url.params["startAt"])
            comments = [{"id": str(start + 1), "body": "c", "author": {"accountId": "abc"}}]
            return httpx.Response(200, json={"comments": comments, "total": 2})

        comments = _client(handler).list_comments("DX-1")

        self.assertEqual([c.id for c in comments], ["1", "2"])
        self.assertEqual(comments[0].author, "abc")


if __name__ == "__main__":
    unittest.main()
