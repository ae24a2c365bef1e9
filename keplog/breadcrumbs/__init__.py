"""Breadcrumb trail for Keplog SDK."""

from keplog.breadcrumbs.buffer import (
    BreadcrumbBuffer,
    create_http_breadcrumb,
    create_query_breadcrumb,
)

__all__ = ["BreadcrumbBuffer", "create_http_breadcrumb", "create_query_breadcrumb"]
