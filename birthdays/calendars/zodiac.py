from datetime import date
from typing import Literal

from birthdays.models.tenant import Language

ZodiacSign = Literal[
    "aries",
    "taurus",
    "gemini",
    "cancer",
    "leo",
    "virgo",
    "libra",
    "scorpio",
    "sagittarius",
    "capricorn",
    "aquarius",
    "pisces",
]

# (sign, month, first day) in calendar order; each sign runs until the next one starts.
_GREGORIAN_STARTS: list[tuple[ZodiacSign, int, int]] = [
    ("capricorn", 1, 1),
    ("aquarius", 1, 20),
    ("pisces", 2, 19),
    ("aries", 3, 21),
    ("taurus", 4, 20),
    ("gemini", 5, 21),
    ("cancer", 6, 21),
    ("leo", 7, 23),
    ("virgo", 8, 23),
    ("libra", 9, 23),
    ("scorpio", 10, 23),
    ("sagittarius", 11, 22),
    ("capricorn", 12, 22),
]

HEBREW_MONTH_SIGNS: dict[str, ZodiacSign] = {
    "Nisan": "aries",
    "Iyyar": "taurus",
    "Sivan": "gemini",
    "Tamuz": "cancer",
    "Av": "leo",
    "Elul": "virgo",
    "Tishrei": "libra",
    "Cheshvan": "scorpio",
    "Kislev": "sagittarius",
    "Tevet": "capricorn",
    "Sh'vat": "aquarius",
    "Adar": "pisces",
    "Adar I": "pisces",
    "Adar II": "pisces",
}

SIGN_NAMES: dict[Language, dict[ZodiacSign, str]] = {
    "en": {
        "aries": "Aries",
        "taurus": "Taurus",
        "gemini": "Gemini",
        "cancer": "Cancer",
        "leo": "Leo",
        "virgo": "Virgo",
        "libra": "Libra",
        "scorpio": "Scorpio",
        "sagittarius": "Sagittarius",
        "capricorn": "Capricorn",
        "aquarius": "Aquarius",
        "pisces": "Pisces",
    },
    "he": {
        "aries": "טלה",
        "taurus": "שור",
        "gemini": "תאומים",
        "cancer": "סרטן",
        "leo": "אריה",
        "virgo": "בתולה",
        "libra": "מאזניים",
        "scorpio": "עקרב",
        "sagittarius": "קשת",
        "capricorn": "גדי",
        "aquarius": "דלי",
        "pisces": "דגים",
    },
}


def gregorian_sign(birth_date: date) -> ZodiacSign:
    sign = _GREGORIAN_STARTS[0][0]
    for candidate, month, day in _GREGORIAN_STARTS:
        if (birth_date.month, birth_date.day) >= (month, day):
            sign = candidate
    return sign


def hebrew_sign(hebrew_month: str | None) -> ZodiacSign | None:
    if not hebrew_month:
        return None
    return HEBREW_MONTH_SIGNS.get(hebrew_month)


def sign_name(sign: ZodiacSign, language: Language) -> str:
    return SIGN_NAMES[language][sign]
