"""
Lookup tables shared by the normalization, detection and discovery services.
"""

PERCENTILES = ("p25", "p50", "p75", "p90")

# Canonical field -> accepted header spellings (compared lower-cased and trimmed)
COLUMN_ALIASES = {
    "specialty": ["specialty", "speciality", "specialty name", "medical specialty"],
    "variable": ["variable", "benchmark", "metric", "measure", "compensation type"],
    "provider_type": ["provider_type", "provider type", "type", "role", "provider category"],
    "geographic_region": [
        "geographic_region", "geographic region", "region", "location", "geography", "market",
    ],
    "n_orgs": [
        "n_orgs", "n_org", "orgs", "organizations", "group_count", "group count",
        "number of organizations", "# orgs",
    ],
    "n_incumbents": [
        "n_incumbents", "n_incumbent", "incumbents", "indv_count", "individual_count",
        "individual count", "number of incumbents", "# incumbents",
    ],
    "p25": ["p25", "25th", "25th%", "25th percentile", "25%tile", "25th %ile"],
    "p50": ["p50", "50th", "50th%", "50th percentile", "50%tile", "50th %ile", "median"],
    "p75": ["p75", "75th", "75th%", "75th percentile", "75%tile", "75th %ile"],
    "p90": ["p90", "90th", "90th%", "90th percentile", "90%tile", "90th %ile"],
    "year": ["year", "survey year", "survey_year"],
}

LONG_REQUIRED_COLUMNS = ["specialty", "variable", "p25", "p50", "p75", "p90"]
OPTIONAL_COLUMNS = ["provider_type", "geographic_region", "n_orgs", "n_incumbents"]

# Matches a wide-format percentile column such as "tcc_p50" or "work_rvus_p90"
WIDE_COLUMN_PATTERN = r"^(.+)_(p25|p50|p75|p90|25th|50th|75th|90th)$"

# Values that survey vendors print instead of a suppressed statistic
SUPPRESSED_VALUES = {"", "*", "**", "***", "-", "--", "n/a", "na", "null", "none", "nan"}

CANONICAL_REGIONS = ["National", "Northeast", "Southeast", "Midwest", "South", "West"]

# Phrases are matched against the token string, abbreviations only as whole tokens
REGION_PHRASES = [
    ("south central", "South"),
    ("north central", "Midwest"),
    ("northeast", "Northeast"),
    ("north east", "Northeast"),
    ("southeast", "Southeast"),
    ("south east", "Southeast"),
    ("midwest", "Midwest"),
    ("mid west", "Midwest"),
    ("central", "Midwest"),
    ("national", "National"),
    ("nationwide", "National"),
    ("all regions", "National"),
    ("northwest", "West"),
    ("southwest", "West"),
    ("pacific", "West"),
    ("western", "West"),
    ("eastern", "Northeast"),
    ("southern", "South"),
    ("south", "South"),
    ("west", "West"),
    ("east", "Northeast"),
]
REGION_TOKENS = {
    "ne": "Northeast",
    "se": "Southeast",
    "nc": "Midwest",
    "mw": "Midwest",
    "us": "National",
    "usa": "National",
}

# Order matters: assistant and practitioner must be seen before physician
PROVIDER_TYPE_PHRASES = [
    ("physician assistant", "Physician Assistant"),
    ("physician asst", "Physician Assistant"),
    ("nurse practitioner", "Nurse Practitioner"),
    ("nurse anesthetist", "CRNA"),
    ("advanced practice", "Advanced Practice Provider"),
    ("on call", "Call"),
    ("physician", "Physician"),
    ("doctor", "Physician"),
    ("call", "Call"),
]
PROVIDER_TYPE_TOKENS = {
    "pa": "Physician Assistant",
    "np": "Nurse Practitioner",
    "crna": "CRNA",
    "app": "Advanced Practice Provider",
    "apps": "Advanced Practice Provider",
    "md": "Physician",
    "do": "Physician",
    "staff": "Physician",
}

# Survey-level provider type codes
SURVEY_PROVIDER_TYPES = {
    "PHYSICIAN": "Physician",
    "APP": "Advanced Practice Provider",
    "CALL": "Call",
}

DATA_CATEGORIES = {
    "compensation": "COMPENSATION",
    "call pay": "CALL_PAY",
    "call_pay": "CALL_PAY",
    "moonlighting": "MOONLIGHTING",
    "custom": "CUSTOM",
}

# Normalized variable spelling -> standard key
VARIABLE_ALIASES = {
    "tcc": "tcc",
    "total_cash_compensation": "tcc",
    "total_compensation": "tcc",
    "total_cash_comp": "tcc",
    "total_comp": "tcc",
    "tcc_excluding_premium": "tcc_excluding_premium",
    "tcc_excl_premium": "tcc_excluding_premium",
    "work_rvus": "work_rvus",
    "work_rvu": "work_rvus",
    "wrvus": "work_rvus",
    "wrvu": "work_rvus",
    "total_work_rvus": "work_rvus",
    "tcc_per_work_rvu": "tcc_per_work_rvu",
    "tcc_per_wrvu": "tcc_per_work_rvu",
    "comp_per_wrvu": "tcc_per_work_rvu",
    "compensation_per_wrvu": "tcc_per_work_rvu",
    "compensation_per_work_rvu": "tcc_per_work_rvu",
    "compensation_to_work_rvus": "tcc_per_work_rvu",
    "conversion_factor": "tcc_per_work_rvu",
    "cf": "tcc_per_work_rvu",
    "base_salary": "base_salary",
    "base_pay": "base_salary",
    "salary": "base_salary",
    "base_pay_hourly_rate": "base_pay_hourly_rate",
    "hourly_rate": "base_pay_hourly_rate",
    "base_hourly_rate": "base_pay_hourly_rate",
    "asa_units": "asa_units",
    "total_asa_units": "asa_units",
    "panel_size": "panel_size",
    "patient_panel_size": "panel_size",
    "total_encounters": "total_encounters",
    "encounters": "total_encounters",
    "patient_encounters": "total_encounters",
    "tcc_per_encounter": "tcc_per_encounter",
    "compensation_per_encounter": "tcc_per_encounter",
    "net_collections": "net_collections",
    "collections": "net_collections",
    "tcc_to_net_collections": "tcc_to_net_collections",
    "compensation_to_net_collections": "tcc_to_net_collections",
    "tcc_per_asa_unit": "tcc_per_asa_unit",
    "compensation_per_asa_unit": "tcc_per_asa_unit",
    "on_call_compensation": "on_call_compensation",
    "on_call_pay": "on_call_compensation",
    "call_pay": "on_call_compensation",
    "daily_call_rate": "on_call_compensation",
}

ON_CALL_KEYWORDS = ("rate", "comp", "pay", "daily")

# Report metric shorthands
METRIC_KEYS = {
    "tcc": "tcc",
    "wrvu": "work_rvus",
    "wrvus": "work_rvus",
    "cf": "tcc_per_work_rvu",
}

VARIABLE_DISPLAY_NAMES = {
    "tcc": "Total Cash Compensation",
    "tcc_excluding_premium": "TCC (Excluding Premium)",
    "work_rvus": "Work RVUs",
    "tcc_per_work_rvu": "TCC per Work RVU",
    "base_salary": "Base Salary",
    "base_pay_hourly_rate": "Base Pay Hourly Rate",
    "asa_units": "ASA Units",
    "panel_size": "Panel Size",
    "total_encounters": "Total Encounters",
    "tcc_per_encounter": "TCC per Encounter",
    "net_collections": "Net Collections",
    "tcc_to_net_collections": "TCC to Net Collections",
    "tcc_per_asa_unit": "TCC per ASA Unit",
    "on_call_compensation": "On-Call Compensation",
}

# Word fixes applied when a display name is built from a raw key
DISPLAY_ABBREVIATIONS = {
    "tcc": "TCC",
    "rvu": "RVU",
    "rvus": "RVUs",
    "wrvu": "wRVU",
    "wrvus": "wRVUs",
    "asa": "ASA",
    "fte": "FTE",
    "cf": "CF",
    "app": "APP",
    "crna": "CRNA",
    "md": "MD",
    "per": "per",
    "to": "to",
}

CATEGORY_ORDER = {"compensation": 0, "productivity": 1, "ratio": 2, "other": 3}

MEDICAL_TERMS = {
    "cardiology", "surgery", "medicine", "pediatrics", "oncology", "neurology",
    "orthopedic", "orthopedics", "radiology", "anesthesiology", "dermatology",
    "psychiatry", "urology", "gastroenterology", "nephrology", "pulmonary",
    "endocrinology", "rheumatology", "hematology", "emergency", "family",
    "internal", "obstetrics", "gynecology", "ophthalmology", "pathology",
    "critical", "care", "hospitalist", "vascular", "cardiac", "thoracic",
    "interventional", "plastic", "neurosurgery", "otolaryngology",
}

# Common specialty spellings -> preferred display name
SPECIALTY_STANDARD_NAMES = {
    "cardiology": "Cardiology",
    "cardiology general": "Cardiology",
    "cardiology noninvasive": "Cardiology - Noninvasive",
    "cardiology invasive": "Cardiology - Invasive",
    "cardiology interventional": "Cardiology - Interventional",
    "family medicine": "Family Medicine",
    "family practice": "Family Medicine",
    "internal medicine": "Internal Medicine",
    "internal medicine general": "Internal Medicine",
    "general internal medicine": "Internal Medicine",
    "pediatrics": "Pediatrics",
    "pediatrics general": "Pediatrics",
    "general pediatrics": "Pediatrics",
    "emergency medicine": "Emergency Medicine",
    "hospitalist": "Hospitalist",
    "hospital medicine": "Hospitalist",
    "anesthesiology": "Anesthesiology",
    "anesthesia": "Anesthesiology",
    "orthopedic surgery": "Orthopedic Surgery",
    "orthopaedic surgery": "Orthopedic Surgery",
    "general surgery": "General Surgery",
    "surgery general": "General Surgery",
    "obstetrics gynecology": "Obstetrics & Gynecology",
    "obstetrics and gynecology": "Obstetrics & Gynecology",
    "ob gyn": "Obstetrics & Gynecology",
    "obgyn": "Obstetrics & Gynecology",
    "radiology": "Radiology",
    "radiology diagnostic": "Radiology - Diagnostic",
    "psychiatry": "Psychiatry",
    "dermatology": "Dermatology",
    "neurology": "Neurology",
    "urology": "Urology",
    "gastroenterology": "Gastroenterology",
    "pulmonary medicine": "Pulmonary Medicine",
    "pulmonology": "Pulmonary Medicine",
    "critical care": "Critical Care",
}

SIMILARITY_THRESHOLD = 0.6

BLEND_SOURCE_LABEL = "Blended"

# Specialty filter sentinels that mean "no filter"
ALL_SENTINELS = {"all sources", "all types", "all years", "all regions", "all specialties", "all"}
