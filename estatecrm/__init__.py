"""CRM contact aggregation service for real-estate marketing content."""
