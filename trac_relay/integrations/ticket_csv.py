"""Decoding of Trac's CSV ticket export.

``/ticket/{id}?format=csv`` always answers with exactly one header row and
one data row for a single ticket.
"""

from __future__ import annotations

import csv
import io

from ..exceptions import MalformedTicketError
from .models import TICKET_URL_FIELD, Ticket

UTF8_BOM = b"\xef\xbb\xbf"


def parse_ticket_csv(payload: bytes | str, ticket_url: str) -> Ticket:
    """Parse a single-ticket CSV export.

    Args:
        payload: Raw response body
        ticket_url: URL of the ticket page, stored under ``_url``

    Returns:
        Ticket mapping each header to its value, plus ``_url``

    Raises:
        MalformedTicketError: If the CSV is invalid or not header + one row
    """
    if isinstance(payload, bytes):
        # Trac sends a UTF-8 BOM, strip it if present
        if payload.startswith(UTF8_BOM):
            payload = payload[len(UTF8_BOM) :]
        text = payload.decode("utf-8", errors="replace")
    else:
        text = payload[1:] if payload.startswith("\ufeff") else payload

    try:
        records = [row for row in csv.reader(io.StringIO(text)) if row]
    except csv.Error as e:
        raise MalformedTicketError(f"Error while decoding CSV: {e}") from e

    if len(records) != 2 or len(records[0]) != len(records[1]):
        raise MalformedTicketError(
            "Unexpected number of records in CSV",
            {"rows": len(records), "columns": [len(r) for r in records]},
        )

    header, values = records
    ticket = Ticket(zip(header, values))
    ticket[TICKET_URL_FIELD] = ticket_url

    return ticket
