from django.apps import AppConfig


class DineflowCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "dineflow_core"
    verbose_name = "Dineflow Core"
