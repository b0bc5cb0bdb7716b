"""
URL configuration for public (unauthenticated) ticket intake.
"""

from django.urls import path

from . import public_views

app_name = 'public'

urlpatterns = [
    path('medical/', public_views.PublicMedicalSubmitView.as_view(), name='submit-medical'),
    path('control/', public_views.PublicControlSubmitView.as_view(), name='submit-control'),
    path('safety/', public_views.PublicSafetySubmitView.as_view(), name='submit-safety'),
]
