from django.urls import path
from .views import list_create_view
from .views import task_detail_view
from .views import advance_status_view
from .views import prioritized_list_view

urlpatterns = [
    # GET and POST (List tasks and Create new task)
    path('', list_create_view, name="task-list-create"),

    path('prioritized/', prioritized_list_view, name="task-prioritized-list"),

    # GET, PUT, PATCH, DELETE (Detail and Manipulation)
    path('<str:task_id>/', task_detail_view, name="task-detail"),

    path('<str:task_id>/advance-status/', advance_status_view, name="task-advance-status"),
]
