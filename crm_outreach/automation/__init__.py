"""LinkedIn outreach automation: selection, composition, persistence, dispatch."""
