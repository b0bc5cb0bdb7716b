"""
URL configuration for ticket exports (mounted under /api/v1/tickets/).
"""

from django.urls import path

from . import views

app_name = 'exports'

urlpatterns = [
    path('export-excel/', views.ExportExcelView.as_view(), name='export-excel'),
    path('<uuid:pk>/export-pdf/', views.ExportPdfView.as_view(), name='export-pdf'),
]
