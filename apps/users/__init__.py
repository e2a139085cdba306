"""Users app package.

Provides the user directory consulted by the notification dispatcher:
renters, vehicle owners and staff with their email and phone contacts.
Use ``apps.users.models.CustomUser`` as the AUTH_USER_MODEL throughout
the project.
"""
