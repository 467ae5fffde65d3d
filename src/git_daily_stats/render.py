from __future__ import annotations

import csv
import io
import json

from .models import ReportModel
from .window import timestamp_iso

FORMATS = ("text", "json", "csv")
CSV_FIELDS = ["date", "author", "commits", "lines_added", "lines_removed"]


def render_text(report: ReportModel) -> str:
    lines: list[str] = []
    for bucket in report:
        lines.append(f"{bucket.date}:")
        for st in bucket:
            lines.append(f"\t{st.author}:")
            lines.append(f"\t\tCommits: {st.commits}")
            lines.append(f"\t\tAdded lines : {st.lines_added}")
            lines.append(f"\t\tRemoved lines : {st.lines_removed}")
    return "\n".join(lines) + "\n" if lines else ""


def report_to_dict(report: ReportModel) -> dict[str, object]:
    return {
        "latest_commit": timestamp_iso(report.latest_timestamp),
        "days": int(report.days),
        "dates": [
            {
                "date": bucket.date,
                "authors": [
                    {
                        "author": st.author,
                        "commits": int(st.commits),
                        "lines_added": int(st.lines_added),
                        "lines_removed": int(st.lines_removed),
                    }
                    for st in bucket
                ],
            }
            for bucket in report
        ],
    }


def render_json(report: ReportModel) -> str:
    return json.dumps(report_to_dict(report), indent=2, sort_keys=False) + "\n"


def render_csv(report: ReportModel) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_FIELDS)
    for row in report.rows():
        writer.writerow(list(row))
    return buf.getvalue()


def render(report: ReportModel, fmt: str) -> str:
    if fmt == "text":
        return render_text(report)
    if fmt == "json":
        return render_json(report)
    if fmt == "csv":
        return render_csv(report)
    raise ValueError(f"Unknown format: {fmt!r} (expected one of {', '.join(FORMATS)})")
