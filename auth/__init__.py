"""auth/ -- Credentials, tokens, and the user/app store for the SSO service.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/, verification/, or mail/.
"""
