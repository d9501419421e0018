from django.apps import AppConfig


class UserProjectsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'user_projects'
