"""Move Store API: JSON document CRUD with offset and keyset pagination."""
