from django.urls import path
from .views import list_create_view
from .views import retrieve_update_destroy_view
from .views import toggle_complete_view
from .views import quick_add_view, grouped_tasks_view, reprioritize_view, stats_view
from .views import export_view, import_view
from .views import transcribe_view, voice_parse_view

urlpatterns=[
    # GET and POST (List tasks in ranking order and Create new task)
    path('',list_create_view,name="task-list-create"),

    path('quick-add/',quick_add_view,name="task-quick-add"),
    path('grouped/',grouped_tasks_view,name="task-grouped"),
    path('reprioritize/',reprioritize_view,name="task-reprioritize"),
    path('stats/',stats_view,name="task-stats"),

    # Snapshot
    path('export/',export_view,name="task-export"),
    path('import/',import_view,name="task-import"),

    # Voice entry
    path('voice/transcribe/',transcribe_view,name="voice-transcribe"),
    path('voice/parse/',voice_parse_view,name="voice-parse"),

    # GET, PUT, PATCH, DELETE (Detail and Manipulation)
    path('<uuid:pk>/',retrieve_update_destroy_view,name="task-detail"),
    path('<uuid:pk>/toggle-complete/',toggle_complete_view,name="task-toggle-complete"),
]
