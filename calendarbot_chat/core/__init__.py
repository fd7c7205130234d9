"""Infrastructure shared by the calendarbot_chat domain: settings, logging, time, HTTP."""
