import unittest

from dashsync.formatting import format_bytes, format_number, formatted_stats
from dashsync.models import AggregateSnapshot, DashboardState


class FormattingTests(unittest.TestCase):
    def test_format_bytes(self) -> None:
        self.assertEqual(format_bytes(0), "0 KB")
        self.assertEqual(format_bytes(300), "0.3 KB")
        self.assertEqual(format_bytes(1024), "1 KB")
        self.assertEqual(format_bytes(1536), "1.5 KB")
        self.assertEqual(format_bytes(5 * 1024 * 1024), "5 MB")
        self.assertEqual(format_bytes(3 * 1024 ** 3 + 512 * 1024 ** 2), "3.5 GB")

    def test_format_bytes_moves_up_a_unit_after_rounding(self) -> None:
        self.assertEqual(format_bytes(1048575), "1 MB")
        self.assertEqual(format_bytes(1024 ** 3 - 1), "1 GB")
        self.assertEqual(format_bytes(1023 * 1024), "1023 KB")

    def test_format_bytes_clamps_to_gigabytes(self) -> None:
        self.assertEqual(format_bytes(2048 * 1024 ** 3), "2048 GB")

    def test_format_number(self) -> None:
        self.assertEqual(format_number(0), "0")
        self.assertEqual(format_number(999), "999")
        self.assertEqual(format_number(1000), "1.0K")
        self.assertEqual(format_number(1500), "1.5K")
        self.assertEqual(format_number(25300), "25.3K")

    def test_formatted_stats_cards(self) -> None:
        state = DashboardState(
            stats=AggregateSnapshot(totalFiles=2, totalAnalyses=3, totalDataPoints=1500, totalSize=300),
            uploadCount=4,
        )
        cards = formatted_stats(state)

        self.assertEqual([card.title for card in cards], ["Files Uploaded", "Analyses Created", "Data Points", "Storage Used"])
        self.assertEqual([card.value for card in cards], ["4", "3", "1.5K", "0.3 KB"])
        self.assertEqual([card.color for card in cards], ["blue", "green", "purple", "yellow"])
        self.assertEqual(cards[0].icon, "file-spreadsheet")
        self.assertTrue(all(card.change == "+0%" for card in cards))


if __name__ == "__main__":
    unittest.main()
