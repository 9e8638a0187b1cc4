"""Common constructs for congestion controllers: acknowledgments and feedback adaptation."""