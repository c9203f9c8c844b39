"""Paginated document reader with cancellable page rendering."""
