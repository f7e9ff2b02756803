from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger

from recordagg import AggregationConfigError, aggregate
from recordagg.io import dumps_result, read_records, read_request, write_result

app = typer.Typer()


@app.callback()
def main() -> None:
    """Grouped, re-mergeable statistics over JSON records."""
    logger.enable("recordagg")


@app.command("aggregate")
def aggregate_command(
    request_path: Path = typer.Option(
        ...,
        "--request",
        exists=True,
        dir_okay=False,
        help="JSON object with matchKeys, buckets, fields, sortBy and includeMetadata.",
    ),
    records_paths: List[Path] = typer.Option(
        [],
        "--records",
        exists=True,
        dir_okay=False,
        help="JSON array or .jsonl file of records; repeat to merge several partial results.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        help="Write the result here instead of stdout.",
    ),
    no_metadata: bool = typer.Option(
        False,
        "--no-metadata",
        help="Strip aggregation metadata. Stripped output can no longer be re-aggregated.",
    ),
) -> None:
    """
    Aggregate records into grouped results plus totals.
    """
    try:
        options = dict(read_request(request_path))
        if records_paths:
            records = list(options.get("records", []))
            for path in records_paths:
                records.extend(read_records(path))
            options["records"] = records
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if no_metadata:
        options.pop("noAggregateMetadata", None)
        options["includeMetadata"] = False

    try:
        result = aggregate(options)
    except AggregationConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if output is None:
        typer.echo(dumps_result(result))
        return
    write_result(output, result)
    logger.info(
        "Wrote {} grouped records to {} ({} diagnostics)",
        len(result.grouped_records),
        output,
        len(result.diagnostics),
    )


if __name__ == "__main__":
    app()
