# automation/urls.py

from django.urls import path
from .views import list_create_view, retrieve_update_destroy_view, toggle_view

urlpatterns = [
    # GET and POST (List and Create)
    path('', list_create_view, name='rule-list-create'),

    # GET, PUT, PATCH, DELETE (Detail and Manipulation)
    path('<str:rule_id>/', retrieve_update_destroy_view, name='rule-detail'),

    path('<str:rule_id>/toggle/', toggle_view, name='rule-toggle'),
]
