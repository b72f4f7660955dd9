from django.urls import path,include
from tasks.views import health_view, analytics_view, insights_view

urlpatterns=[
    path('v1/health/',health_view,name='health'),
    path('v1/tasks/',include('tasks.urls')),
    path('v1/automation-rules/',include('automation.urls')),
    path('v1/analytics/',analytics_view,name='analytics'),
    path('v1/insights/',insights_view,name='insights')
]
