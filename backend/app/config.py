"""Domain constants: CSV templates, header aliases, status labels."""

from __future__ import annotations

# Bulk template kinds, as used in URLs and in the last-results store.
TEMPLATE_STUDENTS = "students"
TEMPLATE_SCHOLARSHIPS = "scholarships"
TEMPLATE_KINDS = (TEMPLATE_STUDENTS, TEMPLATE_SCHOLARSHIPS)

# Canonical field -> accepted header spellings (compared case-insensitively).
# Every field accepts its snake_case and camelCase spelling.
STUDENT_FINANCIAL_HEADERS: dict[str, tuple[str, ...]] = {
    "student_id": ("student_id", "studentId"),
    "bank_account": ("bank_account", "bankAccount"),
    "bank_code": ("bank_code", "bankCode"),
    "agency_number": ("agency_number", "agencyNumber"),
    "account_number": ("account_number", "accountNumber"),
    "tax_id": ("tax_id", "taxId"),
    "billing_address": ("billing_address", "billingAddress"),
    "billing_city": ("billing_city", "billingCity"),
    "billing_state": ("billing_state", "billingState"),
    "billing_zip_code": ("billing_zip_code", "billingZipCode"),
}

SCHOLARSHIP_HEADERS: dict[str, tuple[str, ...]] = {
    "student_id": ("student_id", "studentId"),
    "scholarship_id": ("scholarship_id", "scholarshipId"),
    "start_date": ("start_date", "startDate"),
    "end_date": ("end_date", "endDate"),
    "discount_percentage": ("discount_percentage", "discountPercentage"),
}

REQUIRED_HEADERS: dict[str, frozenset[str]] = {
    TEMPLATE_STUDENTS: frozenset({"student_id"}),
    TEMPLATE_SCHOLARSHIPS: frozenset({"student_id"}),
}

# Downloadable templates: header row + one example row.
CSV_TEMPLATES: dict[str, str] = {
    TEMPLATE_STUDENTS: (
        "student_id,bank_account,bank_code,agency_number,account_number,tax_id,"
        "billing_address,billing_city,billing_state,billing_zip_code\n"
        "exemplo123,12345-6,001,1234,567890-1,123.456.789-00,"
        "Rua Exemplo 123,São Paulo,SP,01234-567\n"
    ),
    TEMPLATE_SCHOLARSHIPS: (
        "student_id,scholarship_id,start_date,end_date,discount_percentage\n"
        "exemplo123,bolsa001,2024-01-01,2024-12-31,50.00\n"
    ),
}

# Remote operations per template.
BULK_RPC: dict[str, tuple[str, str]] = {
    TEMPLATE_STUDENTS: ("bulk_register_student_financial_data", "p_student_data"),
    TEMPLATE_SCHOLARSHIPS: ("bulk_register_scholarship_students", "p_scholarship_data"),
}

# Profiles with this role are offered as bank-slip recipients.
STUDENT_ROLE = "student"
