"""
JSON API routes used by the dashboard pages.

  - POST /api/submit        validate and echo a dashboard form submission
  - POST /api/final         relay a JSON body to the configured external API
  - POST /api/multi-search  fan a search term out to the search endpoints
"""
