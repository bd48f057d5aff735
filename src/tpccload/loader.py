"""
Load coordinator: hands one warehouse at a time to a pool of worker threads
and arbitrates the per-table output files they share.

Shared state lives on the LoadCoordinator instance:
- JobDispenser: the next warehouse to load, behind one lock.
- SinkRegistry: one append-only CSV file per table, each behind its own lock.
Random streams and database connections belong to exactly one worker.

If the run aborts, committed jobs stay in the database; there is no
compensating rollback across workers.
"""

from __future__ import annotations

import importlib
import os
import sys
import threading

from tpccload.config import LoadConfig
from tpccload.errors import (
    DriverError,
    JoinInterrupted,
    LoadError,
    OutputError,
    WorkerError,
)
from tpccload.generator import TABLES, TABLES_BY_NAME, Cardinality, RowGenerator
from tpccload.tpccrandom import TPCCRandom


# -----------------------------
# Job dispenser
# -----------------------------
class JobDispenser:
    """Hands out warehouse ids 1..N, each exactly once; None once exhausted."""

    def __init__(self, num_jobs: int):
        self.num_jobs = num_jobs
        self._next = 1
        self._lock = threading.Lock()

    def next(self) -> int | None:
        with self._lock:
            if self._next > self.num_jobs:
                return None
            job = self._next
            self._next += 1
            return job

    def cancel(self) -> None:
        with self._lock:
            self._next = self.num_jobs + 1


# -----------------------------
# CSV output
# -----------------------------
class TableSink:
    def __init__(self, table: str, path: str):
        self.table = table
        self.path = path
        self._lock = threading.Lock()
        self._fh = None

    def open(self) -> None:
        self._fh = open(self.path, "w", encoding="utf-8", newline="")

    def append(self, records: list[str]) -> None:
        """Write a batch of complete records and consume it.

        The list is emptied even when the write fails, so callers can reuse
        it for the next batch.
        """
        try:
            data = "".join(records)
            with self._lock:
                self._fh.write(data)
        finally:
            records.clear()

    def close(self) -> None:
        with self._lock:
            if self._fh is not None:
                fh, self._fh = self._fh, None
                fh.close()


class SinkRegistry:
    def __init__(self, directory: str):
        self.directory = directory
        self.sinks = {
            t.name: TableSink(t.name, os.path.join(directory, t.csv_file)) for t in TABLES
        }

    def open_all(self) -> None:
        opened: list[TableSink] = []
        try:
            for sink in self.sinks.values():
                sink.open()
                opened.append(sink)
        except OSError as e:
            for sink in opened:
                try:
                    sink.close()
                except OSError:
                    pass
            raise OutputError(f"cannot open CSV file: {e}") from e

    def append(self, table: str, records: list[str]) -> None:
        try:
            self.sinks[table].append(records)
        except OSError as e:
            raise OutputError(f"write to {self.sinks[table].path} failed: {e}") from e

    def end_job(self) -> None:
        pass

    def abort_job(self) -> None:
        pass

    def close_all(self) -> None:
        first: OSError | None = None
        for sink in self.sinks.values():
            try:
                sink.close()
            except OSError as e:
                print(f"[error] closing {sink.path}: {e}", file=sys.stderr)
                if first is None:
                    first = e
        if first is not None:
            raise OutputError(f"cannot close CSV file: {first}") from first


# -----------------------------
# Database output
# -----------------------------
def load_driver(name: str):
    try:
        return importlib.import_module(name)
    except ImportError as e:
        raise DriverError(f"cannot load database driver '{name}': {e}") from e


def copy_statement(table: str, null_value: str) -> str:
    t = TABLES_BY_NAME[table]
    null_lit = null_value.replace("'", "''")
    return (
        f"COPY {t.db_table} ({', '.join(t.columns)}) "
        f"FROM STDIN WITH (FORMAT csv, NULL '{null_lit}')"
    )


class DatabaseOutput:
    """Per-worker COPY stream; one transaction per job."""

    def __init__(self, conn, null_value: str):
        self.conn = conn
        self._copy_sql = {t.name: copy_statement(t.name, null_value) for t in TABLES}

    def append(self, table: str, records: list[str]) -> None:
        try:
            with self.conn.cursor() as cur:
                with cur.copy(self._copy_sql[table]) as cp:
                    cp.write("".join(records))
        finally:
            records.clear()

    def end_job(self) -> None:
        self.conn.commit()

    def abort_job(self) -> None:
        try:
            self.conn.rollback()
        except Exception as e:
            print(f"[warn] rollback failed: {e}", file=sys.stderr)


def close_connections(conns) -> Exception | None:
    """Close every connection; report failures and return the first one."""
    first: Exception | None = None
    for i, conn in enumerate(conns):
        try:
            conn.close()
        except Exception as e:
            print(f"[error] closing connection of worker {i}: {e}", file=sys.stderr)
            if first is None:
                first = e
    return first


# -----------------------------
# Worker
# -----------------------------
class LoadWorker:
    def __init__(
        self,
        ordinal: int,
        coordinator: LoadCoordinator,
        output,
        rnd: TPCCRandom,
        null_value: str,
    ):
        self.ordinal = ordinal
        self.coordinator = coordinator
        self.output = output
        self.gen = RowGenerator(rnd, null_value, coordinator.cardinality)
        self.jobs_done = 0
        self.thread = threading.Thread(target=self.run, name=f"load-worker-{ordinal}")

    def load_job(self, job: int) -> None:
        if job == 1:
            for table, records in self.gen.global_tables(self.coordinator.cfg.warehouses):
                self.output.append(table, records)
        for table, records in self.gen.warehouse_tables(job):
            self.output.append(table, records)
        self.output.end_job()

    def run(self) -> None:
        print(f"[worker {self.ordinal}] started")
        job = None
        try:
            while True:
                job = self.coordinator.dispenser.next()
                if job is None:
                    break
                print(f"[worker {self.ordinal}] loading warehouse {job}")
                self.load_job(job)
                self.jobs_done += 1
        except Exception as e:
            print(f"[worker {self.ordinal}] ERROR: {e}", file=sys.stderr)
            self.output.abort_job()
            self.coordinator.worker_failed(self.ordinal, job, e)
            return
        print(f"[worker {self.ordinal}] done ({self.jobs_done} warehouses)")


# -----------------------------
# Coordinator
# -----------------------------
class LoadCoordinator:
    def __init__(
        self,
        cfg: LoadConfig,
        rnd: TPCCRandom | None = None,
        cardinality: Cardinality = Cardinality(),
    ):
        self.cfg = cfg
        self.rnd = rnd if rnd is not None else TPCCRandom(cfg.seed)
        self.cardinality = cardinality
        self.dispenser = JobDispenser(cfg.warehouses)
        self.sinks: SinkRegistry | None = None
        self.workers: list[LoadWorker] = []
        self.failure: WorkerError | None = None
        self._failure_lock = threading.Lock()

    def worker_failed(self, ordinal: int, job: int | None, exc: Exception) -> None:
        """Record the first failure and stop handing out jobs."""
        self.dispenser.cancel()
        with self._failure_lock:
            if self.failure is None:
                self.failure = WorkerError(ordinal, job, str(exc))
                self.failure.__cause__ = exc

    def open_connections(self) -> list:
        cfg = self.cfg
        driver = load_driver(cfg.driver)
        conns = []
        for i in range(cfg.load_workers):
            conn = None
            try:
                conn = driver.connect(cfg.dsn(), user=cfg.user, password=cfg.password)
                conn.autocommit = False
            except driver.Error as e:
                if conn is not None:
                    conns.append(conn)
                close_connections(conns)
                raise DriverError(f"worker {i}: cannot connect: {e}") from e
            conns.append(conn)
        return conns

    def create_workers(self) -> list[LoadWorker]:
        cfg = self.cfg
        if cfg.write_csv:
            self.sinks = SinkRegistry(cfg.file_location)
            print(f"[setup] writing CSV files to {cfg.file_location}")
            self.sinks.open_all()
            outputs = [self.sinks] * cfg.load_workers
        else:
            outputs = [
                DatabaseOutput(conn, cfg.csv_null_value) for conn in self.open_connections()
            ]
        self.workers = [
            LoadWorker(i, self, outputs[i], self.rnd.new_random(), cfg.csv_null_value)
            for i in range(cfg.load_workers)
        ]
        return self.workers

    def wait(self) -> None:
        for w in self.workers:
            try:
                w.thread.join()
            except KeyboardInterrupt:
                self.dispenser.cancel()
                raise JoinInterrupted(f"interrupted waiting for worker {w.ordinal}") from None

    def teardown(self) -> None:
        if self.sinks is not None:
            self.sinks.close_all()
        else:
            first = close_connections([w.output.conn for w in self.workers])
            if first is not None:
                raise DriverError(f"cannot close database connection: {first}") from first

    def run(self) -> None:
        print(
            f"[setup] loading {self.cfg.warehouses} warehouses "
            f"with {self.cfg.load_workers} workers"
        )
        self.create_workers()
        for w in self.workers:
            w.thread.start()
        self.wait()
        try:
            self.teardown()
        except LoadError:
            # a worker failure is the root cause; the close error is already reported
            if self.failure is None:
                raise
        if self.failure is not None:
            raise self.failure
        print("[done] load complete")
