from fastapi import HTTPException

from ..schemas.enums import SortDirection


def apply_sort(query, sort_by: str, direction: SortDirection, allowed: set[str]):
    if sort_by not in allowed:
        raise HTTPException(status_code=400, detail=f"Cannot sort by '{sort_by}'")
    return query.order(sort_by, desc=direction == SortDirection.DESC)


def apply_search(query, column: str, term: str | None):
    if term:
        return query.ilike(column, f"%{term.strip()}%")
    return query


def first(response) -> dict | None:
    if response.data:
        return response.data[0]
    return None


def count_by(rows: list[dict], key: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for row in rows:
        value = row.get(key)
        counts[value] = counts.get(value, 0) + 1
    return counts


def attach_shop_names(supabase, rows: list[dict]) -> list[dict]:
    """Copies each row's vendor shop name onto the row as `shop_name`."""
    vendor_ids = sorted({row["vendor_id"] for row in rows if row.get("vendor_id")})
    if not vendor_ids:
        return rows
    vendors = supabase.table("vendors").select("id, shop_name").in_("id", vendor_ids).execute().data or []
    names = {v["id"]: v.get("shop_name") for v in vendors}
    for row in rows:
        row["shop_name"] = names.get(row.get("vendor_id"))
    return rows
