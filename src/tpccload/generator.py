"""
TPC-C initial population, one warehouse at a time.

RowGenerator yields (table, records) batches where records is a list of
complete, newline-terminated CSV lines. The same batches feed the CSV file
sinks and the database COPY stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

import numpy as np

from tpccload.tpccrandom import TPCCRandom, last_names

CHUNK_ROWS = 10_000


@dataclass(frozen=True)
class Table:
    name: str
    csv_file: str
    db_table: str
    columns: tuple[str, ...]


TABLES = (
    Table("config", "config.csv", "bmsql_config", ("cfg_name", "cfg_value")),
    Table(
        "item",
        "item.csv",
        "bmsql_item",
        ("i_id", "i_name", "i_price", "i_data", "i_im_id"),
    ),
    Table(
        "warehouse",
        "warehouse.csv",
        "bmsql_warehouse",
        (
            "w_id",
            "w_ytd",
            "w_tax",
            "w_name",
            "w_street_1",
            "w_street_2",
            "w_city",
            "w_state",
            "w_zip",
        ),
    ),
    Table(
        "district",
        "district.csv",
        "bmsql_district",
        (
            "d_w_id",
            "d_id",
            "d_ytd",
            "d_tax",
            "d_next_o_id",
            "d_name",
            "d_street_1",
            "d_street_2",
            "d_city",
            "d_state",
            "d_zip",
        ),
    ),
    Table(
        "stock",
        "stock.csv",
        "bmsql_stock",
        ("s_w_id", "s_i_id", "s_quantity", "s_ytd", "s_order_cnt", "s_remote_cnt", "s_data")
        + tuple(f"s_dist_{d:02d}" for d in range(1, 11)),
    ),
    Table(
        "customer",
        "customer.csv",
        "bmsql_customer",
        (
            "c_w_id",
            "c_d_id",
            "c_id",
            "c_discount",
            "c_credit",
            "c_last",
            "c_first",
            "c_credit_lim",
            "c_balance",
            "c_ytd_payment",
            "c_payment_cnt",
            "c_delivery_cnt",
            "c_street_1",
            "c_street_2",
            "c_city",
            "c_state",
            "c_zip",
            "c_phone",
            "c_since",
            "c_middle",
            "c_data",
        ),
    ),
    Table(
        "history",
        "cust-hist.csv",
        "bmsql_history",
        ("h_c_id", "h_c_d_id", "h_c_w_id", "h_d_id", "h_w_id", "h_date", "h_amount", "h_data"),
    ),
    Table(
        "order",
        "order.csv",
        "bmsql_oorder",
        (
            "o_w_id",
            "o_d_id",
            "o_id",
            "o_c_id",
            "o_carrier_id",
            "o_ol_cnt",
            "o_all_local",
            "o_entry_d",
        ),
    ),
    Table(
        "order_line",
        "order-line.csv",
        "bmsql_order_line",
        (
            "ol_w_id",
            "ol_d_id",
            "ol_o_id",
            "ol_number",
            "ol_i_id",
            "ol_delivery_d",
            "ol_amount",
            "ol_supply_w_id",
            "ol_quantity",
            "ol_dist_info",
        ),
    ),
    Table("new_order", "new-order.csv", "bmsql_new_order", ("no_w_id", "no_d_id", "no_o_id")),
)

TABLES_BY_NAME = {t.name: t for t in TABLES}


@dataclass(frozen=True)
class Cardinality:
    items: int = 100_000
    districts: int = 10
    customers: int = 3_000
    orders: int = 3_000
    new_orders: int = 900
    min_order_lines: int = 5
    max_order_lines: int = 15

    def __post_init__(self):
        if min(self.items, self.districts, self.customers) < 1:
            raise ValueError(f"items, districts and customers must be >= 1: {self}")
        if self.orders < self.customers:
            raise ValueError(
                f"every customer needs an order: orders {self.orders} "
                f"< customers {self.customers}"
            )
        if not 0 <= self.new_orders <= self.orders:
            raise ValueError(f"new_orders must be within 0..orders: {self.new_orders}")
        if not 1 <= self.min_order_lines <= self.max_order_lines:
            raise ValueError(
                f"bad order line range {self.min_order_lines}..{self.max_order_lines}"
            )

    @property
    def first_new_order(self) -> int:
        return self.orders - self.new_orders + 1


def csv_line(fields) -> str:
    return ",".join(fields) + "\n"


def timestamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{dt.microsecond // 1000:03d}"


class RowGenerator:
    def __init__(self, rnd: TPCCRandom, null_value: str, cardinality: Cardinality = Cardinality()):
        self.rnd = rnd
        self.null = null_value
        self.card = cardinality
        self.now = timestamp(datetime.now())

    # -----------------------------
    # Single-shot tables
    # -----------------------------
    def global_tables(self, warehouses: int) -> Iterator[tuple[str, list[str]]]:
        rnd = self.rnd
        yield "config", [
            csv_line(("warehouses", str(warehouses))),
            csv_line(("nURandCLast", str(rnd.c_last))),
            csv_line(("nURandCC_ID", str(rnd.c_id))),
            csv_line(("nURandCI_ID", str(rnd.i_id))),
        ]
        for start in range(1, self.card.items + 1, CHUNK_ROWS):
            yield "item", self.items(start, min(start + CHUNK_ROWS, self.card.items + 1))

    def items(self, start: int, stop: int) -> list[str]:
        n = stop - start
        rnd = self.rnd
        names = rnd.astrings(n, 14, 24)
        prices = rnd.decimals(100, 10000, 2, n)
        data = rnd.data_strings(n, 26, 50)
        im_ids = rnd.integers(1, 10000, n).tolist()
        return [
            csv_line((str(i_id), names[k], prices[k], data[k], str(im_ids[k])))
            for k, i_id in enumerate(range(start, stop))
        ]

    # -----------------------------
    # Per-warehouse tables
    # -----------------------------
    def warehouse_tables(self, w_id: int) -> Iterator[tuple[str, list[str]]]:
        yield "warehouse", [self.warehouse(w_id)]
        for start in range(1, self.card.items + 1, CHUNK_ROWS):
            yield "stock", self.stock(w_id, start, min(start + CHUNK_ROWS, self.card.items + 1))
        for d_id in range(1, self.card.districts + 1):
            yield "district", [self.district(w_id, d_id)]
            customers, history = self.customers(w_id, d_id)
            yield "customer", customers
            yield "history", history
            orders, order_lines, new_orders = self.orders(w_id, d_id)
            yield "order", orders
            yield "order_line", order_lines
            yield "new_order", new_orders

    def _address(self, n: int) -> list[tuple[str, ...]]:
        rnd = self.rnd
        return list(
            zip(
                rnd.astrings(n, 10, 20),
                rnd.astrings(n, 10, 20),
                rnd.astrings(n, 10, 20),
                rnd.states(n),
                rnd.zips(n),
            )
        )

    def warehouse(self, w_id: int) -> str:
        rnd = self.rnd
        (tax,) = rnd.decimals(0, 2000, 4, 1)
        (name,) = rnd.astrings(1, 6, 10)
        (addr,) = self._address(1)
        return csv_line((str(w_id), "300000.00", tax, name) + addr)

    def district(self, w_id: int, d_id: int) -> str:
        rnd = self.rnd
        (tax,) = rnd.decimals(0, 2000, 4, 1)
        (name,) = rnd.astrings(1, 6, 10)
        (addr,) = self._address(1)
        return csv_line(
            (str(w_id), str(d_id), "30000.00", tax, str(self.card.orders + 1), name) + addr
        )

    def stock(self, w_id: int, start: int, stop: int) -> list[str]:
        n = stop - start
        rnd = self.rnd
        quantity = rnd.integers(10, 100, n).tolist()
        data = rnd.data_strings(n, 26, 50)
        dists = [rnd.astrings(n, 24, 24) for _ in range(10)]
        w = str(w_id)
        return [
            csv_line(
                (w, str(i_id), str(quantity[k]), "0", "0", "0", data[k])
                + tuple(col[k] for col in dists)
            )
            for k, i_id in enumerate(range(start, stop))
        ]

    def customers(self, w_id: int, d_id: int) -> tuple[list[str], list[str]]:
        n = self.card.customers
        rnd = self.rnd
        c_ids = np.arange(1, n + 1)
        # the first 1000 customers cover every last name exactly once
        nums = np.where(c_ids <= 1000, c_ids - 1, rnd.nurand(255, 0, 999, n))
        lasts = last_names(nums)
        discounts = rnd.decimals(0, 5000, 4, n)
        bad_credit = (rnd.rng.random(n) < 0.10).tolist()
        firsts = rnd.astrings(n, 8, 16)
        addrs = self._address(n)
        phones = rnd.nstrings(n, 16, 16)
        data = rnd.astrings(n, 300, 500)
        h_data = rnd.astrings(n, 12, 24)

        w, d = str(w_id), str(d_id)
        customers = []
        history = []
        for k in range(n):
            c = str(k + 1)
            customers.append(
                csv_line(
                    (w, d, c, discounts[k], "BC" if bad_credit[k] else "GC", lasts[k], firsts[k])
                    + ("50000.00", "-10.00", "10.00", "1", "0")
                    + addrs[k]
                    + (phones[k], self.now, "OE", data[k])
                )
            )
            history.append(csv_line((c, d, w, d, w, self.now, "10.00", h_data[k])))
        return customers, history

    def orders(self, w_id: int, d_id: int) -> tuple[list[str], list[str], list[str]]:
        card = self.card
        rnd = self.rnd
        n = card.orders
        # each customer gets one order per round; orders beyond customers start a new round
        rounds = -(-n // card.customers)
        c_ids = np.concatenate([rnd.permutation(card.customers) for _ in range(rounds)])
        c_ids = c_ids[:n].tolist()
        carriers = rnd.integers(1, 10, n).tolist()
        ol_cnts = rnd.integers(card.min_order_lines, card.max_order_lines, n).tolist()
        total_lines = int(sum(ol_cnts))
        i_ids = rnd.integers(1, card.items, total_lines).tolist()
        amounts = rnd.decimals(1, 999999, 2, total_lines)
        dist_info = rnd.astrings(total_lines, 24, 24)

        w, d = str(w_id), str(d_id)
        orders = []
        order_lines = []
        new_orders = []
        line = 0
        for k in range(n):
            o_id = k + 1
            o = str(o_id)
            delivered = o_id < card.first_new_order
            orders.append(
                csv_line(
                    (
                        w,
                        d,
                        o,
                        str(c_ids[k]),
                        str(carriers[k]) if delivered else self.null,
                        str(ol_cnts[k]),
                        "1",
                        self.now,
                    )
                )
            )
            for number in range(1, ol_cnts[k] + 1):
                order_lines.append(
                    csv_line(
                        (
                            w,
                            d,
                            o,
                            str(number),
                            str(i_ids[line]),
                            self.now if delivered else self.null,
                            "0.00" if delivered else amounts[line],
                            w,
                            "5",
                            dist_info[line],
                        )
                    )
                )
                line += 1
            if not delivered:
                new_orders.append(csv_line((w, d, o)))
        return orders, order_lines, new_orders
