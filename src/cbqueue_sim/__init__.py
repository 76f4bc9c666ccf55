"""cbqueue-sim - Interactive load simulator for cbqueue."""
