from __future__ import annotations

import re
from dataclasses import dataclass


# radio-button field values (e.g. `isperson`)
RADIO_FIELD_TRUE = "T"
RADIO_FIELD_FALSE = "F"


COMPANY_KEYWORDS_PATTERN = re.compile(
    r"(?:company|corp|inc|co\.?,? ltd\.?|ltd|\.?l\.?lc|plc|group|consulting|consultants|packaging|print"
    r"|associates|partners|practice|service(s)?|health|healthcare|medical| spa|spa |surgeons|aesthetic"
    r"|america|usa|\.com)\s*$",
    re.IGNORECASE,
)

COMPANY_ABBREVIATION_PATTERN = re.compile(
    r"(?:^|\s)(?:inc|corp|co|ltd|llc|l\.l\.c|llp|lp|plc|pc|p\.c|p\.a|pllc|dba)\.?\s*$",
    re.IGNORECASE,
)

COMMON_EMAIL_DOMAINS: tuple[str, ...] = (
    "gmail.com", "yahoo.com", "hotmail.com", "outlook.com", "icloud.com",
    "aol.com", "mail.com", "live.com", "msn.com", "comcast.net",
    "verizon.net", "att.net", "sbcglobal.net", "bellsouth.net",
    "cox.net", "charter.net", "earthlink.net", "roadrunner.com", ".edu",
)


STATE_ABBREVIATIONS: dict[str, str] = {
    "ALABAMA": "AL", "ALASKA": "AK", "ARIZONA": "AZ", "ARKANSAS": "AR", "CALIFORNIA": "CA",
    "COLORADO": "CO", "CONNECTICUT": "CT", "DELAWARE": "DE", "DISTRICT OF COLUMBIA": "DC",
    "FLORIDA": "FL", "GEORGIA": "GA", "HAWAII": "HI", "IDAHO": "ID", "ILLINOIS": "IL",
    "INDIANA": "IN", "IOWA": "IA", "KANSAS": "KS", "KENTUCKY": "KY", "LOUISIANA": "LA",
    "MAINE": "ME", "MARYLAND": "MD", "MASSACHUSETTS": "MA", "MICHIGAN": "MI", "MINNESOTA": "MN",
    "MISSISSIPPI": "MS", "MISSOURI": "MO", "MONTANA": "MT", "NEBRASKA": "NE", "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH", "NEW JERSEY": "NJ", "NEW MEXICO": "NM", "NEW YORK": "NY",
    "NORTH CAROLINA": "NC", "NORTH DAKOTA": "ND", "OHIO": "OH", "OKLAHOMA": "OK", "OREGON": "OR",
    "PENNSYLVANIA": "PA", "RHODE ISLAND": "RI", "SOUTH CAROLINA": "SC", "SOUTH DAKOTA": "SD",
    "TENNESSEE": "TN", "TEXAS": "TX", "UTAH": "UT", "VERMONT": "VT", "VIRGINIA": "VA",
    "WASHINGTON": "WA", "WEST VIRGINIA": "WV", "WISCONSIN": "WI", "WYOMING": "WY",
    "PUERTO RICO": "PR", "GUAM": "GU", "VIRGIN ISLANDS": "VI", "AMERICAN SAMOA": "AS",
    "NORTHERN MARIANA ISLANDS": "MP",
}

UNITED_STATES = "US"

COUNTRY_ABBREVIATIONS: dict[str, str] = {
    "UNITED STATES": UNITED_STATES, "UNITED STATES OF AMERICA": UNITED_STATES, "USA": UNITED_STATES,
    "U.S.A.": UNITED_STATES, "U.S.": UNITED_STATES, "AMERICA": UNITED_STATES,
    "CANADA": "CA", "MEXICO": "MX", "UNITED KINGDOM": "GB", "GREAT BRITAIN": "GB", "ENGLAND": "GB",
    "IRELAND": "IE", "FRANCE": "FR", "GERMANY": "DE", "ITALY": "IT", "SPAIN": "ES", "PORTUGAL": "PT",
    "NETHERLANDS": "NL", "BELGIUM": "BE", "SWITZERLAND": "CH", "AUSTRIA": "AT", "SWEDEN": "SE",
    "NORWAY": "NO", "DENMARK": "DK", "FINLAND": "FI", "POLAND": "PL", "GREECE": "GR", "TURKEY": "TR",
    "ISRAEL": "IL", "UNITED ARAB EMIRATES": "AE", "SAUDI ARABIA": "SA", "INDIA": "IN", "CHINA": "CN",
    "HONG KONG": "HK", "TAIWAN": "TW", "JAPAN": "JP", "SOUTH KOREA": "KR", "KOREA": "KR",
    "KOREA, REPUBLIC OF": "KR", "SINGAPORE": "SG", "MALAYSIA": "MY", "THAILAND": "TH", "VIETNAM": "VN",
    "PHILIPPINES": "PH", "INDONESIA": "ID", "AUSTRALIA": "AU", "NEW ZEALAND": "NZ", "BRAZIL": "BR",
    "ARGENTINA": "AR", "CHILE": "CL", "COLOMBIA": "CO", "PERU": "PE", "SOUTH AFRICA": "ZA",
}


@dataclass(frozen=True, slots=True)
class Term:
    """A payment term known to the ERP."""
    name: str
    internalid: int


# keyed by the spelling used in legacy exports
DEFAULT_TERMS: dict[str, Term] = {
    "Net 15": Term("Net 15", 1),
    "Net 30": Term("Net 30", 2),
    "Net 60": Term("Net 60", 3),
    "Due on receipt": Term("Due on receipt", 4),
    "1% 10 Net 30": Term("1% 10 Net 30", 5),
    "2% 10 Net 30": Term("2% 10 Net 30", 6),
    "Net 45": Term("Net 45", 7),
    "Net 90": Term("Net 90", 8),
    "Prepaid": Term("Prepaid", 9),
    "Credit Card": Term("Credit Card", 10),
}

# customer type label -> customer category internal id
DEFAULT_CUSTOMER_CATEGORIES: dict[str, int] = {
    "Distributor": 1,
    "Retail": 2,
    "Wholesale": 3,
    "Clinic": 4,
    "Hospital": 5,
    "Individual": 6,
    "Other": 7,
}
