"""
Use Cases Layer (Business Operations)

This package exposes entry points for business logic, organized by feature.

Structure
---------
usecases/
└── auth/           # Registration, login/2FA, sessions, verification, moderation

Usage
-----
    from app.application.usecases.auth import LoginUseCase, RegisterUseCase
"""
