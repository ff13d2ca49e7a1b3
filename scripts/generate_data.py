"""
Data generation and loading script for the collection audit.

Implements deterministic pseudo-random catalogue record generation, CSV
emission, and Postgres COPY loading. Seeds the collection lookup and the
location table the records point at.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path

import psycopg
import typer

from collection_audit.infrastructure.db_factory import build_dsn

app = typer.Typer(help="Generate synthetic catalogue records and load into Postgres (CSV + COPY).")

CSV_HEADER = [
    "collection",
    "reg_prefix",
    "reg_number",
    "reg_suffix",
    "summary",
    "location_id",
    "insured_value",
    "on_loan",
    "last_moved_at",
]

LOCATIONS = [
    "Store A, Bay 1",
    "Store A, Bay 2",
    "Store B, Rack 7",
    "Gallery 3",
    "Gallery 5",
    "Conservation Lab",
    "Off-site Store",
]

_OBJECTS = ["Oil on canvas", "Bronze figure", "Porcelain vase", "Silver salver", "Woodcut print"]
_SUBJECTS = ["harbour scene", "portrait of a woman", "still life", "river landscape", "allegory"]


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _generate_rows_csv(
    csv_path: Path,
    rows: int,
    batch_size: int,
    seed: int,
    collection: str = "paintings",
) -> None:
    rng = random.Random(seed)
    now = datetime.now(UTC)

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)

        buffer: list[list[str]] = []
        for i in range(rows):
            prefix = rng.choice(["", "X", "GA"])
            number = i + 1
            suffix = rng.choice(["", "", "", "a", "b"])
            code = f"{prefix}{number}{suffix}"
            summary = f"{rng.choice(_OBJECTS)}, {rng.choice(_SUBJECTS)}"
            if rng.random() < 0.2:
                summary = f"{code}: {summary}"
            # Empty CSV fields load as NULL.
            location_id = "" if rng.random() < 0.05 else str(rng.randint(1, len(LOCATIONS)))
            insured_value = round(rng.lognormvariate(7, 1.5), 2)
            on_loan = rng.random() < 0.03
            moved = now - timedelta(days=rng.randint(0, 3650))
            buffer.append(
                [
                    collection,
                    prefix,
                    str(number),
                    suffix,
                    summary,
                    location_id,
                    f"{insured_value:.2f}",
                    "t" if on_loan else "f",
                    moved.isoformat(),
                ]
            )
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)


def _seed_lookups(conn: psycopg.Connection, collection: str) -> None:
    with conn.cursor() as cur:
        cur.execute(
            "INSERT INTO public.collections (name) VALUES (%s) ON CONFLICT (name) DO NOTHING",
            (collection,),
        )
        cur.executemany(
            "INSERT INTO public.locations (id, name) VALUES (%s, %s) ON CONFLICT (id) DO NOTHING",
            list(enumerate(LOCATIONS, start=1)),
        )


def _copy_into_db(dsn: str, csv_path: Path, collection: str = "paintings") -> int:
    with psycopg.connect(dsn) as conn:
        _seed_lookups(conn, collection)
        with conn.cursor() as cur:
            with cur.copy(
                f"""
                COPY public.records ({", ".join(CSV_HEADER)})
                FROM STDIN WITH (FORMAT csv, HEADER TRUE)
                """
            ) as copy:
                with csv_path.open("r", encoding="utf-8") as f:
                    for line in f:
                        copy.write(line)
            conn.commit()
    return 0


@app.command()
def main(
    rows: int = typer.Option(
        10_000,
        "--rows",
        "-r",
        help="Number of records to generate.",
    ),
    batch_size: int = typer.Option(
        2_000,
        "--batch-size",
        "-b",
        help="Batch size for CSV buffering during generation.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    collection: str = typer.Option(
        "paintings",
        "--collection",
        "-c",
        help="Collection the generated records belong to.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path (if omitted, a temp file will be used).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate CSV; skip loading into Postgres.",
    ),
) -> None:
    """
    Generate synthetic catalogue records and optionally load them using COPY.
    """
    start = time.perf_counter()
    if output:
        csv_path = output
        csv_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="collection_audit_csv_"))
        csv_path = tmpdir / "records.csv"

    typer.echo(f"Generating {rows:,} records for '{collection}' -> {csv_path} (seed={seed})")
    _generate_rows_csv(csv_path, rows=rows, batch_size=batch_size, seed=seed, collection=collection)
    gen_duration = time.perf_counter() - start
    typer.echo(f"CSV generation completed in {gen_duration:.2f}s")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    load_start = time.perf_counter()
    typer.echo("Loading CSV into Postgres via COPY...")
    _copy_into_db(_build_dsn(dsn), csv_path, collection=collection)
    load_duration = time.perf_counter() - load_start
    typer.echo(f"Load completed in {load_duration:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
