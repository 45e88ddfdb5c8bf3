import unittest
from unittest.mock import Mock, patch

import httpx


def _status_error(code):
    request = httpx.Request("GET", "https://example.test/")
    return httpx.HTTPStatusError("boom", request=request, response=httpx.Response(code, request=request))


class RetryTests(unittest.TestCase):
    def test_should_retry_transient_failures_only(self):
        from taskbridge.services.retry import should_retry

        self.assertTrue(should_retry(httpx.ConnectError("refused")))
        self.assertTrue(should_retry(_status_error(429)))
        self.assertTrue(should_retry(_status_error(503)))
        self.assertFalse(should_retry(_status_error(404)))
        self.assertFalse(should_retry(ValueError("bad")))

    def test_with_retries_backs_off_then_succeeds(self):
        from taskbridge.services.retry import with_retries

        fn = Mock(side_effect=[_status_error(502), _status_error(502), "ok"])

        with patch("taskbridge.services.retry.time.sleep") as sleep:
            self.assertEqual(with_retries(fn, base_delay_s=0.5), "ok")

        self.assertEqual([c.args[0] for c in sleep.call_args_list], [0.5, 1.0])

    def test_with_retries_gives_up_after_max_attempts(self):
        from taskbridge.services.retry import with_retries

        fn = Mock(side_effect=_status_error(500))

        with patch("taskbridge.services.retry.time.sleep"):
            with self.assertRaises(httpx.HTTPStatusError):
                with_retries(fn, max_attempts=3)

        self.assertEqual(fn.call_count, 3)


if __name__ == "__main__":
    unittest.main()
