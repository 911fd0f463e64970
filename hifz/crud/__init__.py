from hifz.crud.memorization import (
    get_item,
    find_item,
    insert_item,
    update_item,
    delete_item,
    list_due,
    list_items,
    count_items,
    count_due,
    count_by_status
)

__all__ = [
    "get_item",
    "find_item",
    "insert_item",
    "update_item",
    "delete_item",
    "list_due",
    "list_items",
    "count_items",
    "count_due",
    "count_by_status",
]
