"""
Bikepark Reports - Facility Repository
Looks up facility and section display names for report series.
"""

from collections import OrderedDict
from typing import Dict, Sequence

from sqlalchemy import select
from sqlalchemy.engine import Connection

from database.schema import fietsenstalling_sectie, fietsenstallingen
from utils.logger import log_database_error


class FacilityRepository:
    """Read-only access to fietsenstallingen and fietsenstalling_sectie."""

    def __init__(self, connection: Connection):
        self.conn = connection

    def get_titles(self, facility_ids: Sequence[str]) -> Dict[str, str]:
        """
        Map StallingsID to Title for the given facilities.

        Unknown IDs are left out of the result.
        """
        if not facility_ids:
            return {}

        stmt = (
            select(fietsenstallingen.c.StallingsID, fietsenstallingen.c.Title)
            .where(fietsenstallingen.c.StallingsID.in_(list(facility_ids)))
        )
        try:
            rows = self.conn.execute(stmt).fetchall()
        except Exception as e:
            log_database_error(e, "Failed to fetch facility titles")
            raise

        return {row.StallingsID: row.Title or row.StallingsID for row in rows}

    def get_section_titles(self, facility_ids: Sequence[str]) -> Dict[str, str]:
        """
        Map section externalid to a display name, for the given facilities.

        The name is the facility title, followed by " - <section>" when the
        section title differs from it. Ordered by facility, then section.
        """
        if not facility_ids:
            return OrderedDict()

        f, s = fietsenstallingen, fietsenstalling_sectie
        stmt = (
            select(s.c.externalid, f.c.Title, s.c.titel)
            .select_from(f.join(s, f.c.ID == s.c.fietsenstallingsId))
            .where(f.c.StallingsID.in_(list(facility_ids)))
            .where(s.c.externalid.is_not(None))
            .order_by(f.c.StallingsID, s.c.externalid)
        )
        try:
            rows = self.conn.execute(stmt).fetchall()
        except Exception as e:
            log_database_error(e, "Failed to fetch section titles")
            raise

        titles = OrderedDict()
        for externalid, facility_title, section_title in rows:
            facility_title = facility_title or externalid
            if not section_title or section_title.lower() == facility_title.lower():
                titles[externalid] = facility_title
            else:
                titles[externalid] = f"{facility_title} - {section_title}"
        return titles
