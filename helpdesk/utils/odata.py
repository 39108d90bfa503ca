"""
OData expression helpers for SharePoint list filters
"""


def odata_escape(value: str) -> str:
    """
    Escape a value for use inside an OData string literal

    Single quotes are doubled, which is the only escape OData
    string literals support.
    """
    return value.replace("'", "''")


def odata_string(value: str) -> str:
    """Render a quoted OData string literal"""
    return f"'{odata_escape(value)}'"


def contains_text(field_name: str, text: str) -> str:
    """
    Build a case-insensitive "contains" predicate for a text field

    Args:
        field_name: Internal field name (e.g. "Title")
        text: Raw search text, lower-cased before escaping

    Returns:
        substringof('<text>',<field>) expression
    """
    return f"substringof({odata_string(text.lower())},{field_name})"
