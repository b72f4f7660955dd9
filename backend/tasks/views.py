# tasks/views.py

import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from automation.store import RuleStore

from .analytics import AnalyticsStore, build_analytics, generate_insights
from .serializers import TaskSerializer
from .services import (
    DuplicateTaskError,
    TaskNotFoundError,
    TaskPersistenceError,
    TaskService,
)

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = {'error': 'Task not found'}


class HealthView(APIView):
    def get(self, request):
        return Response({'status': 'ok', 'timestamp': timezone.now().isoformat()})

health_view = HealthView.as_view()


class TaskListCreateView(APIView):
    """
    GET: List tasks, newest first. Optional filters: priority, status, search.
    POST: Create a task; the automation rules run before it is saved.
    """

    def get(self, request):
        tasks = TaskService().list_tasks(
            priority=request.query_params.get('priority'),
            status=request.query_params.get('status'),
            search=request.query_params.get('search'),
        )
        return Response([t.to_dict() for t in tasks])

    def post(self, request):
        serializer = TaskSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = TaskService().create_task(serializer.validated_data)
        except DuplicateTaskError as e:
            return Response({'error': f"Task {e} already exists"}, status=status.HTTP_409_CONFLICT)
        except TaskPersistenceError:
            logger.exception("Task creation failed")
            return Response({'error': 'Failed to create task'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(
            {
                'task': result.task.to_dict(),
                'appliedRules': result.applied_rules,
                'message': 'Task created successfully',
            },
            status=status.HTTP_201_CREATED,
        )

list_create_view = TaskListCreateView.as_view()


class TaskDetailView(APIView):
    """
    GET, PUT, PATCH, DELETE for a single task.
    PUT and PATCH both merge the given fields over the stored task.
    """

    def get(self, request, task_id):
        try:
            task = TaskService().get_task(task_id)
        except TaskNotFoundError:
            return Response(TASK_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(task.to_dict())

    def put(self, request, task_id):
        serializer = TaskSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            task = TaskService().update_task(task_id, serializer.validated_data)
        except TaskNotFoundError:
            return Response(TASK_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except TaskPersistenceError:
            logger.exception(f"Task {task_id} update failed")
            return Response({'error': 'Failed to update task'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({'task': task.to_dict(), 'message': 'Task updated successfully'})

    patch = put

    def delete(self, request, task_id):
        try:
            TaskService().delete_task(task_id)
        except TaskNotFoundError:
            return Response(TASK_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except TaskPersistenceError:
            logger.exception(f"Task {task_id} deletion failed")
            return Response({'error': 'Failed to delete task'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({'message': 'Task deleted successfully'})

task_detail_view = TaskDetailView.as_view()


class TaskAdvanceStatusView(APIView):
    """POST: move the task one step along pending -> in-progress -> completed -> pending."""

    def post(self, request, task_id):
        try:
            task = TaskService().advance_status(task_id)
        except TaskNotFoundError:
            return Response(TASK_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except TaskPersistenceError:
            logger.exception(f"Task {task_id} status update failed")
            return Response({'error': 'Failed to update task'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({'task': task.to_dict(), 'message': 'Task status updated'})

advance_status_view = TaskAdvanceStatusView.as_view()


class PrioritizedTaskListView(APIView):
    """
    Returns open tasks ordered by their current urgency score, highest first.
    The score is recomputed on every request since deadlines move closer.
    """

    def get(self, request):
        return Response(TaskService().prioritized_tasks())

prioritized_list_view = PrioritizedTaskListView.as_view()


class AnalyticsView(APIView):
    def get(self, request):
        snapshot = AnalyticsStore().load_snapshot()
        tasks = TaskService().list_tasks()
        rules = RuleStore().load_rules()
        return Response(build_analytics(snapshot, tasks, rules))

analytics_view = AnalyticsView.as_view()


class InsightsView(APIView):
    def get(self, request):
        return Response(generate_insights(TaskService().list_tasks()))

insights_view = InsightsView.as_view()
