import hashlib
import json
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, field_validator, model_serializer, model_validator


class AccentType(str, Enum):
    """Pitch-accent pattern categories, declared in canonical order"""
    ATAMADAKA = "atamadaka"
    HEIBAN = "heiban"
    NAKADAKA = "nakadaka"
    ODAKA = "odaka"

    @classmethod
    def from_code(cls, code: str) -> "AccentType":
        try:
            return cls(code)
        except ValueError:
            raise ValueError(f"Invalid accent type code: {code}") from None

    @classmethod
    def all_types(cls) -> List["AccentType"]:
        return list(cls)

    @property
    def label(self) -> str:
        return _ACCENT_TYPE_INFO[self][0]

    @property
    def description(self) -> str:
        return _ACCENT_TYPE_INFO[self][1]


_ACCENT_TYPE_INFO: Dict[AccentType, Tuple[str, str]] = {
    AccentType.ATAMADAKA: ("頭高型", "第1モーラが高く、第2モーラ以降が低い"),
    AccentType.HEIBAN: ("平板型", "第1モーラが低く、第2モーラ以降が高く平坦"),
    AccentType.NAKADAKA: ("中高型", "語の中間で高→低に下がる"),
    AccentType.ODAKA: ("尾高型", "語末モーラが高く、助詞で下がる"),
}


class Prefecture(str, Enum):
    """The 47 prefectures keyed by JIS code"""
    HOKKAIDO = "01"
    AOMORI = "02"
    IWATE = "03"
    MIYAGI = "04"
    AKITA = "05"
    YAMAGATA = "06"
    FUKUSHIMA = "07"
    IBARAKI = "08"
    TOCHIGI = "09"
    GUNMA = "10"
    SAITAMA = "11"
    CHIBA = "12"
    TOKYO = "13"
    KANAGAWA = "14"
    NIIGATA = "15"
    TOYAMA = "16"
    ISHIKAWA = "17"
    FUKUI = "18"
    YAMANASHI = "19"
    NAGANO = "20"
    GIFU = "21"
    SHIZUOKA = "22"
    AICHI = "23"
    MIE = "24"
    SHIGA = "25"
    KYOTO = "26"
    OSAKA = "27"
    HYOGO = "28"
    NARA = "29"
    WAKAYAMA = "30"
    TOTTORI = "31"
    SHIMANE = "32"
    OKAYAMA = "33"
    HIROSHIMA = "34"
    YAMAGUCHI = "35"
    TOKUSHIMA = "36"
    KAGAWA = "37"
    EHIME = "38"
    KOCHI = "39"
    FUKUOKA = "40"
    SAGA = "41"
    NAGASAKI = "42"
    KUMAMOTO = "43"
    OITA = "44"
    MIYAZAKI = "45"
    KAGOSHIMA = "46"
    OKINAWA = "47"

    @classmethod
    def from_code(cls, code: str) -> "Prefecture":
        try:
            return cls(code)
        except ValueError:
            raise ValueError(f"Invalid prefecture code: {code}") from None

    @classmethod
    def all_codes(cls) -> List[str]:
        return [p.value for p in cls]

    @classmethod
    def by_region(cls, region: str) -> List["Prefecture"]:
        return [p for p in cls if p.region == region]

    @property
    def label(self) -> str:
        return _PREFECTURE_INFO[self.value][0]

    @property
    def region(self) -> str:
        return _PREFECTURE_INFO[self.value][1]


_PREFECTURE_INFO: Dict[str, Tuple[str, str]] = {
    "01": ("北海道", "北海道"),
    "02": ("青森県", "東北"),
    "03": ("岩手県", "東北"),
    "04": ("宮城県", "東北"),
    "05": ("秋田県", "東北"),
    "06": ("山形県", "東北"),
    "07": ("福島県", "東北"),
    "08": ("茨城県", "関東"),
    "09": ("栃木県", "関東"),
    "10": ("群馬県", "関東"),
    "11": ("埼玉県", "関東"),
    "12": ("千葉県", "関東"),
    "13": ("東京都", "関東"),
    "14": ("神奈川県", "関東"),
    "15": ("新潟県", "中部"),
    "16": ("富山県", "中部"),
    "17": ("石川県", "中部"),
    "18": ("福井県", "中部"),
    "19": ("山梨県", "中部"),
    "20": ("長野県", "中部"),
    "21": ("岐阜県", "中部"),
    "22": ("静岡県", "中部"),
    "23": ("愛知県", "中部"),
    "24": ("三重県", "近畿"),
    "25": ("滋賀県", "近畿"),
    "26": ("京都府", "近畿"),
    "27": ("大阪府", "近畿"),
    "28": ("兵庫県", "近畿"),
    "29": ("奈良県", "近畿"),
    "30": ("和歌山県", "近畿"),
    "31": ("鳥取県", "中国"),
    "32": ("島根県", "中国"),
    "33": ("岡山県", "中国"),
    "34": ("広島県", "中国"),
    "35": ("山口県", "中国"),
    "36": ("徳島県", "四国"),
    "37": ("香川県", "四国"),
    "38": ("愛媛県", "四国"),
    "39": ("高知県", "四国"),
    "40": ("福岡県", "九州"),
    "41": ("佐賀県", "九州"),
    "42": ("長崎県", "九州"),
    "43": ("熊本県", "九州"),
    "44": ("大分県", "九州"),
    "45": ("宮崎県", "九州"),
    "46": ("鹿児島県", "九州"),
    "47": ("沖縄県", "九州"),
}


class AgeGroup(str, Enum):
    TEENS = "10s"
    TWENTIES = "20s"
    THIRTIES = "30s"
    FORTIES = "40s"
    FIFTIES = "50s"
    SIXTIES = "60s"
    SEVENTIES_PLUS = "70s+"

    @classmethod
    def from_code(cls, code: str) -> "AgeGroup":
        try:
            return cls(code)
        except ValueError:
            raise ValueError(f"Invalid age group code: {code}") from None

    @property
    def label(self) -> str:
        return _AGE_GROUP_LABELS[self]


_AGE_GROUP_LABELS: Dict[AgeGroup, str] = {
    AgeGroup.TEENS: "10代",
    AgeGroup.TWENTIES: "20代",
    AgeGroup.THIRTIES: "30代",
    AgeGroup.FORTIES: "40代",
    AgeGroup.FIFTIES: "50代",
    AgeGroup.SIXTIES: "60代",
    AgeGroup.SEVENTIES_PLUS: "70代以上",
}


class Gender(str, Enum):
    """Self-reported gender attached to a poll vote, never required"""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"

    @classmethod
    def from_code(cls, code: str) -> "Gender":
        try:
            return cls(code)
        except ValueError:
            raise ValueError(f"Invalid gender code: {code}") from None

    @property
    def label(self) -> str:
        return _GENDER_LABELS[self]


_GENDER_LABELS: Dict[Gender, str] = {
    Gender.MALE: "男性",
    Gender.FEMALE: "女性",
    Gender.OTHER: "その他",
    Gender.PREFER_NOT_TO_SAY: "回答しない",
}


class _WrappedValue(BaseModel):
    """Base for identifiers that wrap a single primitive.

    Accepts the bare primitive when validated as a field of another model
    and serializes back to it.
    """
    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def wrap_primitive(cls, data: Any) -> Any:
        if isinstance(data, dict) or isinstance(data, cls):
            return data
        return {"value": data}

    @model_serializer
    def serialize(self) -> Any:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


class DeviceId(_WrappedValue):
    """Opaque per-device token derived from a browser fingerprint"""
    value: str

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: str) -> str:
        if not v or len(v) < 10:
            raise ValueError("DeviceId must be at least 10 characters")
        return v

    @classmethod
    def generate(
        cls,
        user_agent: str,
        screen_resolution: Optional[str] = None,
        timezone: Optional[str] = None,
        language: Optional[str] = None,
        platform: Optional[str] = None
    ) -> "DeviceId":
        fingerprint = {
            "userAgent": user_agent,
            "screenResolution": screen_resolution,
            "timezone": timezone,
            "language": language,
            "platform": platform,
        }
        data = json.dumps(fingerprint, sort_keys=True)
        return cls(value=hashlib.sha256(data.encode("utf-8")).hexdigest())

    @classmethod
    def from_hash(cls, value: str) -> "DeviceId":
        return cls(value=value)


class WordId(_WrappedValue):
    value: int

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("WordId must be a positive number")
        return v


class VoteId(_WrappedValue):
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def validate_value(cls, v: Any) -> str:
        if isinstance(v, ObjectId):
            v = str(v)
        if not isinstance(v, str) or not v.strip():
            raise ValueError("VoteId must be a non-empty string")
        return v

    @classmethod
    def generate(cls) -> "VoteId":
        return cls(value=str(ObjectId()))
