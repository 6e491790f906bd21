"""
Boat Repository.

Owner-scoped data access for ``boats`` and their ``boat_images``.  Images
are loaded together with their boats (one extra query per batch) and are
removed with the boat through ``ON DELETE CASCADE``.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from decimal import Decimal
from typing import Mapping, Optional

from yachtcrm.models.boat import Boat, BoatImage, BoatSearch, ImageRef
from yachtcrm.repositories.base_repository import OwnedRepository, new_id, utc_now

_PRICE_AMOUNT = "CAST(price_amount AS REAL)"


class BoatRepository(OwnedRepository[Boat]):
    """Data access layer for Boat entities.

    The ``price`` column holds the display string, exposed on the model as
    ``price_label``.  ``price_amount`` is the exact decimal string; it is
    compared and ordered numerically through ``CAST(... AS REAL)``.
    """

    TABLE = "boats"
    MODEL = Boat
    ENTITY = "Boat"
    COLUMNS = (
        "brand",
        "model",
        "year",
        "size",
        "price",
        "price_amount",
        "price_currency",
        "location",
        "description",
        "equipment",
        "owner",
        "engine",
        "engine_hours",
    )
    SORTABLE = frozenset({"created_at", "updated_at", "year", "price_amount"})
    SORT_EXPRESSIONS = {"price_amount": _PRICE_AMOUNT}

    def add_images(self, boat_id: str, images: Iterable[ImageRef]) -> list[BoatImage]:
        """Attach image references to a boat.  The caller owns the ownership check."""

        def _op() -> list[BoatImage]:
            added = self._insert_images(boat_id, images)
            self._commit()
            return added

        return self._run("add_images (boat_images)", _op, entity_id=boat_id)

    def list_prices(self, owner_id: str) -> list[tuple[Optional[Decimal], Optional[str]]]:
        """``(price_amount, price)`` for every boat, for portfolio valuation."""

        def _op() -> list[tuple[Optional[Decimal], Optional[str]]]:
            rows = self.sqlite.execute(
                f"SELECT price_amount, price FROM {self.TABLE} WHERE user_id = ?",
                (owner_id,),
            ).fetchall()
            return [
                (
                    Decimal(row["price_amount"]) if row["price_amount"] is not None else None,
                    row["price"],
                )
                for row in rows
            ]

        return self._run("list_prices (boats)", _op, owner_id=owner_id)

    def search(self, owner_id: str, criteria: BoatSearch) -> list[Boat]:
        """Substring match on brand, model and location plus numeric ranges.

        The price range applies to the structured amount, so legacy rows
        without one never match a price filter.
        """
        clauses: list[str] = []
        params: list[object] = []

        for column, value in (
            ("brand", criteria.brand),
            ("model", criteria.model),
            ("location", criteria.location),
        ):
            if value:
                clauses.append(self._like_clause(column))
                params.append(self._like(value))

        for column, op, value in (
            ("year", ">=", criteria.min_year),
            ("year", "<=", criteria.max_year),
            ("size", ">=", criteria.min_size),
            ("size", "<=", criteria.max_size),
            (_PRICE_AMOUNT, ">=", criteria.min_price),
            (_PRICE_AMOUNT, "<=", criteria.max_price),
        ):
            if value is not None:
                clauses.append(f"{column} {op} ?")
                params.append(float(value) if isinstance(value, Decimal) else value)

        return self._search("search (boats)", owner_id, clauses, params)

    # ------------------------------------------------------------------
    # OwnedRepository hooks
    # ------------------------------------------------------------------

    def _row_to_model(self, row: sqlite3.Row) -> Boat:
        data = dict(row)
        data["price_label"] = data.pop("price", None)
        return Boat(**data)

    def _hydrate(self, rows: list[sqlite3.Row]) -> list[Boat]:
        boats = [self._row_to_model(row) for row in rows]
        if not boats:
            return boats

        ids = [boat.id for boat in boats]
        placeholders = ", ".join("?" for _ in ids)
        image_rows = self.sqlite.execute(
            f"SELECT id, boat_id, filename, url, alt FROM boat_images "
            f"WHERE boat_id IN ({placeholders}) ORDER BY created_at, rowid",
            ids,
        ).fetchall()

        by_boat: dict[str, list[BoatImage]] = {}
        for image_row in image_rows:
            image = dict(image_row)
            by_boat.setdefault(image.pop("boat_id"), []).append(BoatImage(**image))
        for boat in boats:
            boat.images = by_boat.get(boat.id, [])
        return boats

    def _after_create(self, entity_id: str, data: Mapping[str, object]) -> None:
        images = data.get("images")
        if images:
            self._insert_images(entity_id, images)  # type: ignore[arg-type]

    def _after_update(self, entity_id: str, patch: Mapping[str, object]) -> None:
        images = patch.get("images")
        if images:
            self._insert_images(entity_id, images)  # type: ignore[arg-type]
            self.sqlite.execute(
                f"UPDATE {self.TABLE} SET updated_at = ? WHERE id = ?",
                (utc_now(), entity_id),
            )

    def _insert_images(self, boat_id: str, images: Iterable[ImageRef]) -> list[BoatImage]:
        added: list[BoatImage] = []
        now = utc_now()
        for ref in images:
            image = BoatImage(id=new_id(), filename=ref.filename, url=ref.url, alt=ref.alt)
            self.sqlite.execute(
                "INSERT INTO boat_images (id, boat_id, filename, url, alt, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (image.id, boat_id, image.filename, image.url, image.alt, now),
            )
            added.append(image)
        return added
