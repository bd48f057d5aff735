from __future__ import annotations

import threading

import pytest

from conftest import read_records
from tpccload.errors import OutputError
from tpccload.generator import TABLES
from tpccload.loader import SinkRegistry, TableSink


@pytest.fixture
def registry(tmp_path):
    reg = SinkRegistry(str(tmp_path))
    reg.open_all()
    yield reg
    reg.close_all()


class TestSinkRegistry:
    def test_one_file_per_table(self, tmp_path, registry):
        names = sorted(p.name for p in tmp_path.iterdir())
        assert names == sorted(t.csv_file for t in TABLES)
        assert {"cust-hist.csv", "order-line.csv", "new-order.csv"} <= set(names)

    def test_append_consumes_the_batch(self, tmp_path, registry):
        batch = ["1,a\n", "2,b\n"]
        registry.append("config", batch)
        assert batch == []
        registry.close_all()
        assert read_records(tmp_path / "config.csv") == ["1,a", "2,b"]

    def test_open_failure(self, tmp_path):
        reg = SinkRegistry(str(tmp_path / "does-not-exist"))
        with pytest.raises(OutputError) as exc:
            reg.open_all()
        assert exc.value.exit_code == 3

    def test_write_failure_is_output_error(self, registry, monkeypatch):
        sink = registry.sinks["stock"]

        def broken_write(data):
            raise OSError("disk full")

        monkeypatch.setattr(sink._fh, "write", broken_write)
        batch = ["1,1\n", "1,2\n"]
        with pytest.raises(OutputError, match="disk full"):
            registry.append("stock", batch)
        assert batch == []

    def test_close_failure_is_output_error(self, tmp_path, monkeypatch):
        reg = SinkRegistry(str(tmp_path))
        reg.open_all()
        real_close = TableSink.close

        def close(self):
            real_close(self)
            if self.table == "item":
                raise OSError("flush failed")

        monkeypatch.setattr(TableSink, "close", close)
        with pytest.raises(OutputError, match="flush failed"):
            reg.close_all()


class TestConcurrentAppend:
    def test_payloads_never_interleave(self, tmp_path, registry):
        writers, batches, lines = 8, 40, 25

        def write(w: int) -> None:
            for b in range(batches):
                registry.append("stock", [f"{w},{b},{k}\n" for k in range(lines)])

        threads = [threading.Thread(target=write, args=(w,)) for w in range(writers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        registry.close_all()

        records = read_records(tmp_path / "stock.csv")
        assert len(records) == writers * batches * lines
        # every payload is one contiguous run of its own lines, in order
        for start in range(0, len(records), lines):
            chunk = [r.split(",") for r in records[start : start + lines]]
            assert len({(w, b) for w, b, _ in chunk}) == 1
            assert [int(k) for _, _, k in chunk] == list(range(lines))

    def test_tables_do_not_block_each_other(self, registry):
        stock = registry.sinks["stock"]
        done = threading.Event()

        def write_item() -> None:
            registry.append("item", ["1,x\n"])
            done.set()

        with stock._lock:
            t = threading.Thread(target=write_item)
            t.start()
            assert done.wait(timeout=5)
        t.join()

    def test_same_table_is_serialized(self, registry):
        stock = registry.sinks["stock"]
        done = threading.Event()

        def write_stock() -> None:
            registry.append("stock", ["1,x\n"])
            done.set()

        with stock._lock:
            t = threading.Thread(target=write_stock)
            t.start()
            assert not done.wait(timeout=0.2)
        assert done.wait(timeout=5)
        t.join()
