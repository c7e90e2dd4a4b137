from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional


class CamelModel(BaseModel):
    """Base model serialised with the upstream API's camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobPosting(CamelModel):
    """One recruitment announcement as returned by the list API.

    Fields the upstream sends that are not declared here are kept and
    passed through to clients unchanged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    recrut_pblnt_sn: int
    inst_nm: str = ""
    recrut_pbanc_ttl: str = ""
    ncs_cd_nm_lst: str = ""
    hire_type_nm_lst: str = ""
    work_rgn_nm_lst: str = ""
    recrut_se_nm: str = ""
    acbg_cond_nm_lst: str = ""
    recrut_nope: Optional[int] = None
    pbanc_bgng_ymd: str = ""
    pbanc_end_ymd: str = ""

    # Derived on every cache refresh
    decimal_day: Optional[int] = None
    ongoing_yn: str = "Y"
    dday_label: Optional[str] = None

    @field_validator(
        "inst_nm",
        "recrut_pbanc_ttl",
        "ncs_cd_nm_lst",
        "hire_type_nm_lst",
        "work_rgn_nm_lst",
        "recrut_se_nm",
        "acbg_cond_nm_lst",
        "pbanc_bgng_ymd",
        "pbanc_end_ymd",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("recrut_nope", mode="before")
    @classmethod
    def _blank_headcount(cls, value: Any) -> Any:
        if isinstance(value, str):
            digits = value.strip()
            return int(digits) if digits.isascii() and digits.isdigit() else None
        return value


class JobFile(CamelModel):
    atch_file_nm: str = ""
    url: str = ""


class JobStep(CamelModel):
    step_nm: str = ""
    step_expln: str = ""


class JobPostingDetail(JobPosting):
    """A posting with the long-text fields only the detail API returns."""

    aply_qlfc_cn: Optional[str] = None  # eligibility
    pref_cn: Optional[str] = None  # preference / bonus points
    pref_cond_cn: Optional[str] = None
    scrnprcdr_mthd_expln: Optional[str] = None  # screening procedure
    disqlfc_rsn: Optional[str] = None  # disqualification reasons
    files: List[JobFile] = []
    steps: List[JobStep] = []

    @field_validator("files", "steps", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return value or []


class StatsSnapshot(CamelModel):
    total_count: int = 0
    ending_soon: int = 0
    new_jobs: int = 0
    institutions: int = 0


class JobListResponse(CamelModel):
    result_code: int = 200
    result_msg: str = "Success"
    total_count: int = 0
    result: List[JobPosting] = []
    stats: Optional[StatsSnapshot] = None


class JobDetailResponse(CamelModel):
    result_code: int = 200
    result_msg: str = "Success"
    result: Optional[JobPostingDetail] = None


class Suggestion(BaseModel):
    text: str
    type: str  # "institution" | "keyword"


class SuggestionResponse(CamelModel):
    result_code: int = 200
    result_msg: str = "Success"
    suggestions: List[Suggestion] = []


class TrendDatum(BaseModel):
    label: str
    count: int


class TrendResponse(CamelModel):
    result_code: int = 200
    result_msg: str = "Success"
    total_count: int = 0
    regions: List[TrendDatum] = []
    ncs: List[TrendDatum] = []
    hire_types: List[TrendDatum] = []
    monthly: List[TrendDatum] = []
