"""Tests for the transaction metrics sink."""

import threading

from src.metrics import NUMBER_METRIC, TIMESTAMP_METRIC, TransactionMetrics
from src.parser import TransactionRecord


def _sample(metrics, name, repo):
    return metrics.registry.get_sample_value(name, {"repo": repo})


class TestRecord:
    def test_record_sets_both_gauges(self):
        metrics = TransactionMetrics()
        metrics.record("/srv/a", TransactionRecord(6374, 1732967136))

        assert _sample(metrics, NUMBER_METRIC, "/srv/a") == 6374.0
        assert _sample(metrics, TIMESTAMP_METRIC, "/srv/a") == 1732967136.0
        assert metrics.get("/srv/a") == TransactionRecord(6374, 1732967136)

    def test_last_write_wins(self):
        metrics = TransactionMetrics()
        metrics.record("/srv/a", TransactionRecord(1, 100))
        metrics.record("/srv/a", TransactionRecord(2, 200))

        assert metrics.get("/srv/a") == TransactionRecord(2, 200)
        assert _sample(metrics, NUMBER_METRIC, "/srv/a") == 2.0

    def test_repos_are_independent(self):
        metrics = TransactionMetrics()
        metrics.record("/srv/a", TransactionRecord(1, 100))
        metrics.record("/srv/b", TransactionRecord(9, 900))

        assert metrics.repos() == ["/srv/a", "/srv/b"]
        assert metrics.get("/srv/a") == TransactionRecord(1, 100)

    def test_unknown_repo(self):
        metrics = TransactionMetrics()
        assert metrics.get("/srv/missing") is None
        assert _sample(metrics, NUMBER_METRIC, "/srv/missing") is None


class TestIndividualSetters:
    def test_partial_write_not_a_record(self):
        metrics = TransactionMetrics()
        metrics.set_timestamp("/srv/a", 100)
        assert metrics.get("/srv/a") is None
        assert _sample(metrics, TIMESTAMP_METRIC, "/srv/a") == 100.0

    def test_both_setters_make_a_record(self):
        metrics = TransactionMetrics()
        metrics.set_timestamp("/srv/a", 100)
        metrics.set_sequence_number("/srv/a", 7)
        assert metrics.get("/srv/a") == TransactionRecord(7, 100)


class TestRender:
    def test_exposition_contains_labelled_gauges(self):
        metrics = TransactionMetrics()
        metrics.record("/srv/a", TransactionRecord(6374, 1732967136))
        text = metrics.render().decode()

        assert "# TYPE borgbackup_last_transaction_number gauge" in text
        assert "# TYPE borgbackup_last_transaction_timestamp gauge" in text
        assert 'borgbackup_last_transaction_number{repo="/srv/a"} 6374.0' in text

    def test_separate_instances_do_not_share_registry(self):
        first = TransactionMetrics()
        second = TransactionMetrics()
        first.record("/srv/a", TransactionRecord(1, 1))
        assert second.get("/srv/a") is None
        assert "/srv/a" not in second.render().decode()


class TestConcurrentAccess:
    def test_writer_and_scrapers(self):
        metrics = TransactionMetrics()
        errors = []
        done = threading.Event()

        def writer():
            try:
                for i in range(500):
                    metrics.record(f"/srv/{i % 5}", TransactionRecord(i, i * 10))
            except Exception as e:
                errors.append(e)
            finally:
                done.set()

        def scraper():
            try:
                while not done.is_set():
                    metrics.render()
                    for repo in metrics.repos():
                        record = metrics.get(repo)
                        assert record.timestamp == record.sequence_number * 10
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer)] + [
            threading.Thread(target=scraper) for _ in range(3)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert len(metrics.repos()) == 5
