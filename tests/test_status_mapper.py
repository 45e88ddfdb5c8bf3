import unittest


class StatusMapperTests(unittest.TestCase):
    def _mapper(self):
        from taskbridge.services.status_mapper import StatusMapper

        return StatusMapper(
            {"To Do": "To Do", "Doing": "In Progress", "Done": "Done"},
            [["To Do", "Open"]],
        )

    def test_mapped_names_translate_both_ways(self):
        mapper = self._mapper()

        self.assertEqual(mapper.status_for_bucket("Doing"), "In Progress")
        self.assertEqual(mapper.bucket_for_status("In Progress"), "Doing")

    def test_unmapped_names_pass_through(self):
        mapper = self._mapper()

        self.assertEqual(mapper.status_for_bucket("QA"), "QA")
        self.assertEqual(mapper.bucket_for_status("QA"), "QA")

    def test_equivalent_status_finds_mapped_bucket(self):
        mapper = self._mapper()

        self.assertEqual(mapper.bucket_for_status("Open"), "To Do")
        self.assertTrue(mapper.statuses_equivalent("To Do", "Open"))
        self.assertTrue(mapper.statuses_equivalent("open", "TO DO"))
        self.assertTrue(mapper.statuses_equivalent("Done", "done"))
        self.assertFalse(mapper.statuses_equivalent("Done", "Open"))
        self.assertFalse(mapper.statuses_equivalent("In Progress", None))

    def test_map_is_copied_at_construction(self):
        from taskbridge.services.status_mapper import StatusMapper

        source = {"Doing": "In Progress"}
        mapper = StatusMapper(source)
        source["Doing"] = "Blocked"

        self.assertEqual(mapper.status_for_bucket("Doing"), "In Progress")

    def test_from_settings_uses_defaults(self):
        from taskbridge.services.status_mapper import StatusMapper
        from tests.fakes import make_settings

        mapper = StatusMapper.from_settings(make_settings())

        self.assertEqual(mapper.status_for_bucket("In Review"), "In Review")
        self.assertEqual(mapper.bucket_for_status("Open"), "To Do")


if __name__ == "__main__":
    unittest.main()
