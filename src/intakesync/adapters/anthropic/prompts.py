"""Instructions sent with each recognition request."""

from __future__ import annotations

from typing import Final

ID_DOCUMENT_PROMPT: Final[str] = """\
Read the identity document in the image and extract these fields:

- idNumber: driver's license, passport or other document number
- lastName
- firstName
- middleInitial
- addressStreet: house number and street
- addressCity
- addressState: two-letter state code
- addressZip
- sex: M or F
- dob: date of birth as YYYY-MM-DD

Answer with a single JSON object. Use null for fields you cannot read. Add a
"confidence" object that scores every extracted field between 0 and 1.

Example:
{
  "idNumber": "D12345678",
  "lastName": "DOE",
  "firstName": "JOHN",
  "middleInitial": "A",
  "addressStreet": "123 MAIN ST",
  "addressCity": "NEW YORK",
  "addressState": "NY",
  "addressZip": "10001",
  "sex": "M",
  "dob": "1990-01-15",
  "confidence": {"idNumber": 0.95, "lastName": 0.95, "firstName": 0.95}
}"""

TRANSCRIPT_PROMPT: Final[str] = """\
The text below is the transcript of a call between a patient and a booking \
assistant. Extract the patient's details.

Rules:
1. Only use what the patient said. Ignore everything the assistant said.
2. Keep values as the patient stated them.
3. Dates as YYYY-MM-DD where possible.
4. Sex as "M" or "F".
5. Phone numbers as digits only.
6. States as two-letter codes (NY, CA, TX).
7. Leave out any field that was not mentioned or is unclear. Do not guess.
8. Score each field between 0 and 1 in a "confidence" object.

Fields: firstName, lastName, addressStreet, addressCity, addressState, \
addressZip, sex, dob, email, phone, insuranceProvider, insuranceId.

Reply with the raw JSON object only, without markdown or explanations:
{
  "firstName": "...",
  "lastName": "...",
  "confidence": {"firstName": 0.95, "lastName": 0.95}
}

TRANSCRIPT:
"""


def transcript_prompt(transcript: str) -> str:
    return TRANSCRIPT_PROMPT + transcript
