"""verification/ -- One-time email verification codes.

Layer rule: verification/ may import from core/ and auth/ (it marks users
verified through auth.store.UserStore). It does NOT import from api/ or mail/.
api/ composes verification/ with auth/ and mail/, not the other way around.
"""
