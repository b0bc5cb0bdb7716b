"""
URL configuration for tickets.
"""

from django.urls import path

from . import views

app_name = 'tickets'

urlpatterns = [
    path('', views.TicketListCreateView.as_view(), name='list'),
    path('<uuid:pk>/', views.TicketDetailView.as_view(), name='detail'),

    # Workflow actions
    path('<uuid:pk>/submit/', views.SubmitTicketView.as_view(), name='submit'),
    path('<uuid:pk>/escalate/', views.EscalateTicketView.as_view(), name='escalate'),
    path('<uuid:pk>/transfer/', views.TransferTicketView.as_view(), name='transfer'),
    path('<uuid:pk>/return/', views.ReturnTicketView.as_view(), name='return'),
    path('<uuid:pk>/reopen/', views.ReopenTicketView.as_view(), name='reopen'),
    path('<uuid:pk>/close/', views.CloseTicketView.as_view(), name='close'),

    path('<uuid:pk>/comments/', views.TicketCommentsView.as_view(), name='comments'),
    path('<uuid:pk>/attachments/', views.TicketAttachmentsView.as_view(), name='attachments'),
    path('<uuid:pk>/medical-report/', views.MedicalReportView.as_view(), name='medical-report'),
]
