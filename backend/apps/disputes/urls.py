"""
Dispute URL patterns.
"""
from django.urls import path
from apps.disputes import views

app_name = 'disputes'

urlpatterns = [
    # Dispute CRUD
    path('', views.disputes, name='list'),
    path('statistics/', views.dispute_statistics, name='statistics'),
    path('<uuid:pk>/', views.DisputeDetailView.as_view(), name='detail'),

    # Participant actions
    path('<uuid:pk>/evidence/', views.add_evidence, name='add-evidence'),
    path('<uuid:pk>/appeal/', views.appeal_dispute, name='appeal'),

    # Admin decisions
    path('auto-resolve/', views.auto_resolve, name='admin-auto-resolve'),
    path('<uuid:pk>/status/', views.update_status, name='admin-update-status'),
    path('<uuid:pk>/resolve/', views.resolve_dispute, name='admin-resolve'),
    path('<uuid:pk>/reject/', views.reject_dispute, name='admin-reject'),
]
