"""Human-readable document numbers."""


def warehouse_document_number(
    prefix: str, warehouse_code: str, direction: str, sequence: int, padding: int = 6
) -> str:
    """WH-MAIN-OUT-000042 style number, sequence counted per warehouse."""
    parts = [p for p in (prefix, warehouse_code, direction) if p]
    parts.append(str(sequence).zfill(padding))
    return "-".join(parts)


def global_document_number(prefix: str, sequence: int, padding: int = 4) -> str:
    """REQ-0007 style number, sequence counted across all warehouses."""
    return f"{prefix}-{str(sequence).zfill(padding)}"
