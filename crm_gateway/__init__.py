"""CRM entity gateway: routes entity CRUD between the primary API and the document store."""
