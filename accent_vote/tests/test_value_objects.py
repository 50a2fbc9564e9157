import pytest
from pydantic import ValidationError

from accent_vote.models.value_objects import (
    AccentType, AgeGroup, DeviceId, Gender, Prefecture, VoteId, WordId
)


class TestAccentType:
    """Test the closed set of accent types"""

    def test_from_code(self):
        assert AccentType.from_code("heiban") is AccentType.HEIBAN
        assert AccentType.from_code("odaka") is AccentType.ODAKA

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError) as exc_info:
            AccentType.from_code("kifuku")
        assert "Invalid accent type code: kifuku" in str(exc_info.value)

    def test_canonical_order(self):
        assert AccentType.all_types() == [
            AccentType.ATAMADAKA, AccentType.HEIBAN, AccentType.NAKADAKA, AccentType.ODAKA
        ]

    def test_labels(self):
        assert AccentType.HEIBAN.label == "平板型"
        assert AccentType.ATAMADAKA.description


class TestPrefecture:
    """Test the 47 prefecture codes"""

    def test_there_are_47(self):
        codes = Prefecture.all_codes()
        assert len(codes) == 47
        assert codes[0] == "01"
        assert codes[-1] == "47"

    def test_from_code(self):
        tokyo = Prefecture.from_code("13")
        assert tokyo is Prefecture.TOKYO
        assert tokyo.label == "東京都"
        assert tokyo.region == "関東"

    def test_from_code_accepts_member(self):
        assert Prefecture.from_code(Prefecture.OSAKA) is Prefecture.OSAKA

    @pytest.mark.parametrize("code", ["00", "48", "13a", ""])
    def test_unknown_code_rejected(self, code):
        with pytest.raises(ValueError) as exc_info:
            Prefecture.from_code(code)
        assert "Invalid prefecture code" in str(exc_info.value)

    def test_by_region(self):
        shikoku = Prefecture.by_region("四国")
        assert [p.value for p in shikoku] == ["36", "37", "38", "39"]


class TestAgeGroup:

    def test_from_code(self):
        assert AgeGroup.from_code("70s+") is AgeGroup.SEVENTIES_PLUS
        assert AgeGroup.SEVENTIES_PLUS.label == "70代以上"

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError):
            AgeGroup.from_code("80s")


class TestGender:

    def test_from_code(self):
        assert Gender.from_code("prefer_not_to_say") is Gender.PREFER_NOT_TO_SAY
        assert Gender.FEMALE.label == "女性"

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError, match="Invalid gender code"):
            Gender.from_code("unknown")


class TestDeviceId:

    def test_short_value_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            DeviceId(value="short")
        assert "DeviceId must be at least 10 characters" in str(exc_info.value)

    def test_equality_by_value(self):
        assert DeviceId.from_hash("abcdefghij") == DeviceId(value="abcdefghij")
        assert DeviceId.from_hash("abcdefghij") != DeviceId.from_hash("abcdefghik")

    def test_generate_is_deterministic(self):
        first = DeviceId.generate(user_agent="Mozilla/5.0", language="ja-JP")
        second = DeviceId.generate(user_agent="Mozilla/5.0", language="ja-JP")
        other = DeviceId.generate(user_agent="Mozilla/5.0", language="en-US")
        assert first == second
        assert first != other
        assert len(first.value) == 64

    def test_accepts_bare_string_when_validated(self):
        assert DeviceId.model_validate("abcdefghij").value == "abcdefghij"

    def test_hashable(self):
        assert len({DeviceId.from_hash("abcdefghij"), DeviceId.from_hash("abcdefghij")}) == 1


class TestWordId:

    def test_positive_required(self):
        with pytest.raises(ValidationError) as exc_info:
            WordId(value=0)
        assert "WordId must be a positive number" in str(exc_info.value)

    def test_serializes_to_primitive(self):
        assert WordId(value=42).model_dump() == 42
        assert str(WordId(value=42)) == "42"


class TestVoteId:

    def test_generate_unique(self):
        assert VoteId.generate() != VoteId.generate()

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            VoteId(value="  ")
