"""Page/limit pagination for list endpoints"""
from django.conf import settings
from django.core.paginator import Paginator
from rest_framework.response import Response

DEFAULT_LIMIT = 10


def _positive_int(value, default):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def get_pagination_params(request, default_limit=DEFAULT_LIMIT):
    """Parse `page` and `limit`, falling back to defaults on bad input"""
    max_limit = getattr(settings, 'PAGINATION_MAX_LIMIT', 100)
    page = _positive_int(request.query_params.get('page'), 1)
    limit = _positive_int(request.query_params.get('limit'), default_limit)
    return page, min(limit, max_limit)


def get_pagination_meta(page, limit, total):
    total_pages = (total + limit - 1) // limit if total else 0
    return {
        'currentPage': page,
        'totalPages': total_pages,
        'totalItems': total,
        'itemsPerPage': limit,
        'hasNextPage': page < total_pages,
        'hasPrevPage': page > 1,
    }


def paginated_response(request, queryset, serializer_class, context=None):
    """
    Paginate a queryset and serialize the requested page.

    Returns:
        Response with {'results': [...], 'pagination': {...}}
    """
    page, limit = get_pagination_params(request)
    paginator = Paginator(queryset, limit)
    total = paginator.count

    if page > paginator.num_pages and total:
        rows = []
    else:
        rows = paginator.page(page).object_list if total else []

    serializer = serializer_class(rows, many=True, context=context or {'request': request})
    return Response({
        'results': serializer.data,
        'pagination': get_pagination_meta(page, limit, total),
    })
