"""Speech synthesis service: engine drivers and the retrying client."""
