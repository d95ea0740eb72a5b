"""URL configuration: Django admin plus every app's API under /api/v1/"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "ERP Admin Panel"
admin.site.site_title = "ERP Admin Portal"
admin.site.index_title = "Sales, purchasing and inventory administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.parties.urls')),
    path('api/v1/', include('backend.sales.urls')),
    path('api/v1/', include('backend.purchasing.urls')),
    path('api/v1/', include('backend.invoicing.urls')),
    path('api/v1/', include('backend.reports.urls')),
]
