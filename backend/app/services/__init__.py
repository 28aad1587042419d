"""Auth domain services: credential, session, revocation and reset stores"""
