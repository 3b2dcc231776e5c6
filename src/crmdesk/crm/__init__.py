"""CRM record schemas shared by the API client, the board and the pages."""
