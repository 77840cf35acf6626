"""Tabular views of coordinator state and their CSV/HTML/PNG renderings."""

from __future__ import annotations

import csv
import io
import zipfile
from datetime import datetime
from html import escape

from PIL import Image, ImageDraw, ImageFont

from .coordinator import BookingCoordinator
from .models import BookingStatus

ROSTER_COLUMNS = ["Conference", "Location", "Window", "Slots", "Confirmed", "Waitlist"]
USER_COLUMNS = ["Booking", "Conference", "Window", "Status", "Deadline"]


def safe_filename(name: str) -> str:
    cleaned = "".join(ch if ch.isalnum() or ch in " _-" else "_" for ch in name).strip()
    cleaned = cleaned.replace(" ", "_")
    return cleaned or "unnamed"


def format_window(start: datetime, end: datetime) -> str:
    if start.date() == end.date():
        return f"{start:%Y-%m-%d %H:%M}-{end:%H:%M}"
    return f"{start:%Y-%m-%d %H:%M} - {end:%Y-%m-%d %H:%M}"


def roster_rows(coordinator: BookingCoordinator) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for conference in coordinator.list_conferences():
        confirmed = sorted(
            booking.user_id
            for booking in coordinator.list_bookings(conference_name=conference.name)
            if booking.status == BookingStatus.CONFIRMED
        )
        waiting = [
            coordinator.get_booking(booking_id).user_id
            for booking_id in coordinator.waitlist_for(conference.name)
        ]
        rows.append(
            {
                "Conference": conference.name,
                "Location": conference.location,
                "Window": format_window(conference.start, conference.end),
                "Slots": f"{conference.available_slots}/{conference.total_slots}",
                "Confirmed": ", ".join(confirmed),
                "Waitlist": ", ".join(waiting),
            }
        )
    return rows


def user_rows(coordinator: BookingCoordinator, user_id: str) -> list[dict[str, str]]:
    conferences = {conference.name: conference for conference in coordinator.list_conferences()}
    rows: list[dict[str, str]] = []
    for booking in coordinator.active_bookings_for(user_id):
        conference = conferences[booking.conference_name]
        report = coordinator.get_booking_status(booking.booking_id)
        deadline = report.confirmation_deadline
        rows.append(
            {
                "Booking": booking.booking_id,
                "Conference": conference.name,
                "Window": format_window(conference.start, conference.end),
                "Status": str(report.status),
                "Deadline": f"{deadline:%Y-%m-%d %H:%M}" if deadline else "",
            }
        )
    rows.sort(key=lambda row: row["Window"])
    return rows


def build_table_html(rows: list[dict[str, str]], columns: list[str]) -> str:
    header_html = "".join(f"<th>{escape(column)}</th>" for column in columns)
    body_rows = []
    for row in rows:
        cells = [row.get(column, "") for column in columns]
        cell_html = "".join(f"<td>{escape(str(value))}</td>" for value in cells)
        body_rows.append(f"<tr>{cell_html}</tr>")
    return (
        "<table class='booking-table'>"
        f"<thead><tr>{header_html}</tr></thead>"
        f"<tbody>{''.join(body_rows)}</tbody>"
        "</table>"
    )


def rows_to_csv(rows: list[dict[str, str]], columns: list[str]) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode("utf-8")


def rows_to_image_bytes(rows: list[dict[str, str]], columns: list[str]) -> bytes:
    font = ImageFont.load_default()
    padding_x = 12
    padding_y = 10
    gutter = 2

    measure_image = Image.new("RGB", (1, 1), "white")
    draw = ImageDraw.Draw(measure_image)

    column_widths: list[int] = []
    header_heights: list[int] = []
    for column in columns:
        header_bbox = draw.multiline_textbbox((0, 0), column, font=font)
        header_heights.append(header_bbox[3] - header_bbox[1])
        max_width = header_bbox[2] - header_bbox[0]
        for row in rows:
            text = row.get(column, "")
            if not text:
                continue
            bbox = draw.multiline_textbbox((0, 0), text, font=font, spacing=4)
            max_width = max(max_width, bbox[2] - bbox[0])
        column_widths.append(max_width + 2 * padding_x)

    baseline = draw.multiline_textbbox((0, 0), " ", font=font, spacing=4)
    min_height = baseline[3] - baseline[1]
    row_heights: list[int] = []
    for row in rows:
        max_height = min_height
        for column in columns:
            bbox = draw.multiline_textbbox((0, 0), row.get(column, "") or "", font=font, spacing=4)
            max_height = max(max_height, bbox[3] - bbox[1])
        row_heights.append(max_height + 2 * padding_y)

    header_height = (max(header_heights) if header_heights else min_height) + 2 * padding_y
    width = sum(column_widths) + gutter * (len(columns) + 1)
    height = header_height + sum(row_heights) + gutter * (len(row_heights) + 1)

    image = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(image)

    def draw_cell(x: int, y: int, w: int, h: int, text: str, *, bold: bool = False) -> None:
        draw.rectangle([x, y, x + w, y + h], fill="#f6f7fb" if bold else "white", outline="#cdd0d5")
        draw.multiline_text((x + padding_x, y + padding_y), text, font=font, fill="black", spacing=4)

    x = gutter
    y = gutter
    for width_value, column in zip(column_widths, columns):
        draw_cell(x, y, width_value, header_height, column, bold=True)
        x += width_value + gutter

    y += header_height + gutter
    for row, row_height in zip(rows, row_heights):
        x = gutter
        for width_value, column in zip(column_widths, columns):
            draw_cell(x, y, width_value, row_height, row.get(column, ""))
            x += width_value + gutter
        y += row_height + gutter

    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def build_user_archive(coordinator: BookingCoordinator) -> bytes:
    """ZIP with one CSV per user that holds at least one active booking."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        for user in sorted(coordinator.list_users(), key=lambda item: item.user_id):
            rows = user_rows(coordinator, user.user_id)
            if not rows:
                continue
            archive.writestr(
                f"bookings_{safe_filename(user.user_id)}.csv",
                rows_to_csv(rows, USER_COLUMNS),
            )
    return buffer.getvalue()
