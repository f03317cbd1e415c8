"""
Profile Verification Matcher tests.

All tests build an explicit MatcherConfig so results do not depend on the
shipped data/ files (one test at the bottom loads those).
"""
import pytest

from backend.profile_validator.json_path import resolve_path
from backend.profile_validator.matcher import ProfileVerificationMatcher, normalize_date
from backend.profile_validator.schemas import DocumentFieldMapEntry, MatcherConfig, VerifiableCredential

MARKSHEET_DIGILOCKER = DocumentFieldMapEntry(
    vc_type="digilocker",
    format="json",
    fields={"name": "Certificate.IssuedTo.Person.name", "dob": "Certificate.IssuedTo.Person.dob"},
)
MARKSHEET_DHIWAY = DocumentFieldMapEntry(
    vc_type="dhiway",
    format="json",
    fields={"firstName": "student.firstName", "dob": "student.dateOfBirth"},
)
AADHAAR = DocumentFieldMapEntry(
    vc_type="digilocker",
    format="json",
    fields={"dob": "Poi.dob", "gender": "Poi.gender", "name": "Poi.name"},
)


def make_config(**overrides) -> MatcherConfig:
    data = {
        "attribute_documents": {
            "firstName": ["marksheet"],
            "middleName": ["marksheet"],
            "lastName": ["marksheet"],
            "dob": ["aadhaar", "marksheet"],
            "gender": ["aadhaar"],
            "phone": ["marksheet"],
        },
        "field_values": {"gender": {"Male": ["male", "M"], "female": ["female", "f"]}},
        "name_fields_position": {"marksheet": {"firstName": 0, "middleName": 1, "lastName": 2}},
        "doc_to_field_maps": {"marksheet": [MARKSHEET_DIGILOCKER, MARKSHEET_DHIWAY], "aadhaar": [AADHAAR]},
    }
    data.update(overrides)
    return MatcherConfig(**data)


def marksheet_vc(name: str = "Asha R Patil", dob: str = "10-05-2001") -> dict:
    return {
        "vcType": "digilocker",
        "docType": "marksheet",
        "docFormat": "json",
        "content": {"Certificate": {"IssuedTo": {"Person": {"name": name, "dob": dob}}}},
    }


def aadhaar_vc(**poi) -> dict:
    return {"vcType": "digilocker", "docType": "aadhaar", "docFormat": "json", "content": {"Poi": poi}}


@pytest.fixture
def matcher() -> ProfileVerificationMatcher:
    return ProfileVerificationMatcher(make_config())


def result_for(results, attribute):
    return next(r for r in results if r.attribute == attribute)


# ===========================================================================
# Date normalization
# ===========================================================================

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10-05-2001", "2001-05-10"),
        ("2001-05-10", "2001-05-10"),
        ("10/05/2001", "2001-05-10"),
        ("2001/05/10", "2001-05-10"),
        ("DOB: 10-05-2001", "2001-05-10"),
        ("2001-05-10T00:00:00Z", "2001-05-10"),
    ],
)
def test_normalize_date_formats(raw: str, expected: str) -> None:
    assert normalize_date(raw) == expected


@pytest.mark.parametrize("raw", ["May 10 2001", "10.05.2001", "31-02-2001", None, 20010510])
def test_normalize_date_unrecognized(raw) -> None:
    assert normalize_date(raw) is None


# ===========================================================================
# Path resolution
# ===========================================================================

class TestResolvePath:
    def test_nested_keys(self) -> None:
        assert resolve_path({"a": {"b": {"c": 1}}}, "a.b.c") == 1

    def test_list_index(self) -> None:
        assert resolve_path({"a": [{"b": "x"}, {"b": "y"}]}, "a.1.b") == "y"

    @pytest.mark.parametrize("path", ["a.z", "a.b.c.d", "a.list.5", "a.list.first", ""])
    def test_missing_segment_is_absent(self, path: str) -> None:
        assert resolve_path({"a": {"b": {"c": 1}, "list": [0]}}, path) is None

    def test_non_container_content(self) -> None:
        assert resolve_path("plain text", "a") is None


# ===========================================================================
# Matcher scenarios
# ===========================================================================

class TestMatcher:
    def test_dob_normalized_match(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"dob": "2001-05-10"}, [marksheet_vc(dob="10-05-2001")])
        assert result_for(results, "dob").verified is True
        assert result_for(results, "dob").docs_used == ["marksheet"]

    def test_dob_claim_in_other_format(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"dob": "10/05/2001"}, [marksheet_vc(dob="2001-05-10")])
        assert result_for(results, "dob").verified is True

    def test_dob_unrecognized_credential_format(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"dob": "2001-05-10"}, [marksheet_vc(dob="10 May 2001")])
        assert result_for(results, "dob").verified is False

    def test_digilocker_full_name_split(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match(
            {"firstName": "Asha", "middleName": "R", "lastName": "Patil"},
            [marksheet_vc(name="Asha R Patil")],
        )
        assert [(r.attribute, r.verified) for r in results] == [
            ("firstName", True),
            ("middleName", True),
            ("lastName", True),
        ]

    def test_name_comparison_is_case_sensitive(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"firstName": "asha"}, [marksheet_vc(name="Asha R Patil")])
        assert result_for(results, "firstName").verified is False

    def test_name_position_out_of_range(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"lastName": "Asha"}, [marksheet_vc(name="Asha")])
        assert result_for(results, "lastName").verified is False

    def test_other_vc_type_uses_attribute_path(self, matcher: ProfileVerificationMatcher) -> None:
        vc = {
            "vcType": "dhiway",
            "docType": "marksheet",
            "docFormat": "json",
            "content": {"student": {"firstName": "Asha R"}},
        }
        results = matcher.match({"firstName": "Asha R"}, [vc])
        assert result_for(results, "firstName").verified is True

    def test_absent_attribute_is_unverified(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"phone": "9876543210"}, [marksheet_vc()])
        assert result_for(results, "phone").verified is False
        assert result_for(results, "phone").docs_used == []

    def test_unconfigured_attribute_is_unverified(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"favouriteColour": "blue"}, [marksheet_vc()])
        assert results[0].verified is False
        assert results[0].docs_used == []

    def test_null_claim_is_unverified(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"dob": None}, [marksheet_vc()])
        assert results[0].verified is False

    def test_no_credentials(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"dob": "2001-05-10", "firstName": "Asha"}, [])
        assert all(r.verified is False and r.docs_used == [] for r in results)

    def test_results_follow_profile_order(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"lastName": "Patil", "dob": "2001-05-10", "firstName": "X"}, [marksheet_vc()])
        assert [r.attribute for r in results] == ["lastName", "dob", "firstName"]

    def test_synonyms_case_insensitive(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"gender": "male"}, [aadhaar_vc(gender="M")])
        assert result_for(results, "gender").verified is True

    def test_synonym_mismatch(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"gender": "female"}, [aadhaar_vc(gender="M")])
        assert result_for(results, "gender").verified is False

    def test_unknown_canonical_value(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"gender": "unknown"}, [aadhaar_vc(gender="M")])
        assert result_for(results, "gender").verified is False

    def test_first_verifying_document_stops_scan(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match(
            {"dob": "2001-05-10"},
            [aadhaar_vc(dob="10-05-2001"), marksheet_vc(dob="10-05-2001")],
        )
        assert result_for(results, "dob").docs_used == ["aadhaar"]

    def test_falls_through_to_next_document(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match(
            {"dob": "2001-05-10"},
            [aadhaar_vc(dob="01-01-1999"), marksheet_vc(dob="10-05-2001")],
        )
        assert result_for(results, "dob").docs_used == ["marksheet"]

    def test_only_first_available_entry_is_evaluated(self, matcher: ProfileVerificationMatcher) -> None:
        # digilocker entry wins for marksheet even though the dhiway credential would match
        dhiway = {
            "vcType": "dhiway",
            "docType": "marksheet",
            "docFormat": "json",
            "content": {"student": {"dateOfBirth": "2001-05-10"}},
        }
        results = matcher.match({"dob": "2001-05-10"}, [marksheet_vc(dob="01-01-1999"), dhiway])
        assert result_for(results, "dob").verified is False

    def test_missing_doc_map_is_a_lookup_miss(self) -> None:
        config = make_config(doc_to_field_maps={"marksheet": [MARKSHEET_DIGILOCKER]})
        results = ProfileVerificationMatcher(config).match({"dob": "2001-05-10"}, [marksheet_vc()])
        assert result_for(results, "dob").docs_used == ["marksheet"]

    def test_non_json_credential_is_not_traversed(self) -> None:
        entry = DocumentFieldMapEntry(vc_type="digilocker", format="xml", fields={"dob": "Poi.dob"})
        config = make_config(doc_to_field_maps={"aadhaar": [entry]})
        vc = {"vcType": "digilocker", "docType": "aadhaar", "docFormat": "xml", "content": {"Poi": {"dob": "2001-05-10"}}}
        results = ProfileVerificationMatcher(config).match({"dob": "2001-05-10"}, [vc])
        assert result_for(results, "dob").verified is False

    def test_object_value_never_matches(self, matcher: ProfileVerificationMatcher) -> None:
        vc = aadhaar_vc(gender={"value": "M"})
        results = ProfileVerificationMatcher(make_config(field_values={})).match({"gender": "M"}, [vc])
        assert result_for(results, "gender").verified is False

    def test_accepts_credential_models(self, matcher: ProfileVerificationMatcher) -> None:
        vc = VerifiableCredential.model_validate(marksheet_vc())
        assert matcher.match({"firstName": "Asha"}, [vc])[0].verified is True

    def test_configured_date_attributes(self) -> None:
        config = make_config(attribute_documents={"birthDate": ["aadhaar"]}, doc_to_field_maps={
            "aadhaar": [DocumentFieldMapEntry(vc_type="digilocker", format="json", fields={"birthDate": "Poi.dob"})]
        })
        matcher = ProfileVerificationMatcher(config, date_attributes=["birthDate"])
        results = matcher.match({"birthDate": "2001-05-10"}, [aadhaar_vc(dob="10/05/2001")])
        assert results[0].verified is True

    def test_result_wire_format(self, matcher: ProfileVerificationMatcher) -> None:
        results = matcher.match({"dob": "2001-05-10"}, [marksheet_vc()])
        assert results[0].model_dump(by_alias=True) == {
            "attribute": "dob",
            "verified": True,
            "docsUsed": ["marksheet"],
        }

    @pytest.mark.parametrize("full_name", ["Asha R Patil", "Asha Patil"])
    def test_negative_position_takes_last_token(self, full_name: str) -> None:
        config = make_config(
            attribute_documents={"firstName": ["aadhaar"], "lastName": ["aadhaar"]},
            name_fields_position={"aadhaar": {"firstName": 0, "lastName": -1}},
        )
        results = ProfileVerificationMatcher(config).match(
            {"firstName": "Asha", "lastName": "Patil"}, [aadhaar_vc(name=full_name)]
        )
        assert [(r.attribute, r.verified) for r in results] == [("firstName", True), ("lastName", True)]

    def test_negative_position_out_of_range(self) -> None:
        config = make_config(
            attribute_documents={"lastName": ["aadhaar"]},
            name_fields_position={"aadhaar": {"lastName": -3}},
        )
        results = ProfileVerificationMatcher(config).match({"lastName": "Asha"}, [aadhaar_vc(name="Asha Patil")])
        assert result_for(results, "lastName").verified is False
