"""
Bikepark Reports - Facility Repository Integration Tests

Facility and section names used for report legends.

Requires TEST_DB_* environment variables (see conftest.py).
"""

import pytest
from sqlalchemy import insert

from database.repositories.facility_repository import FacilityRepository
from database.schema import fietsenstalling_sectie, fietsenstallingen

pytestmark = pytest.mark.integration


@pytest.fixture
def facilities(bikepark_schema):
    with bikepark_schema.begin() as conn:
        conn.execute(insert(fietsenstallingen), [
            {"ID": "1", "StallingsID": "A", "Title": "Stalling A"},
            {"ID": "2", "StallingsID": "B", "Title": None},
        ])
        conn.execute(insert(fietsenstalling_sectie), [
            {"fietsenstallingsId": "1", "externalid": "A-1", "titel": "stalling a"},
            {"fietsenstallingsId": "1", "externalid": "A-2", "titel": "Kelder"},
            {"fietsenstallingsId": "1", "externalid": None, "titel": "Zonder ID"},
            {"fietsenstallingsId": "2", "externalid": "B-1", "titel": "Buiten"},
        ])
    return bikepark_schema


class TestFacilityRepository:

    def test_titles(self, facilities):
        with facilities.connect() as conn:
            titles = FacilityRepository(conn).get_titles(["A", "B", "C"])

        assert titles == {"A": "Stalling A", "B": "B"}

    def test_section_titles(self, facilities):
        with facilities.connect() as conn:
            titles = FacilityRepository(conn).get_section_titles(["A"])

        assert list(titles.items()) == [("A-1", "Stalling A"), ("A-2", "Stalling A - Kelder")]

    def test_section_of_untitled_facility(self, facilities):
        with facilities.connect() as conn:
            titles = FacilityRepository(conn).get_section_titles(["B"])

        assert titles == {"B-1": "B-1 - Buiten"}

    def test_empty_selection(self, facilities):
        with facilities.connect() as conn:
            assert FacilityRepository(conn).get_section_titles([]) == {}
