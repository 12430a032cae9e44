"""
Well-known names shared between the security layer and the web layer.
"""

# Property key marking an authentication type as usable for back-office login
BACKOFFICE_AUTHENTICATION_TYPE = "CmsBackOffice"

# Property key holding BackOfficeExternalLoginProviderOptions for a provider
BACKOFFICE_EXTERNAL_LOGIN_OPTIONS_PROPERTY = "CmsBackOfficeExternalLoginOptions"

# Authentication type of the identity issued when a browser is remembered for 2FA
TWO_FACTOR_REMEMBER_BROWSER_COOKIE = "CmsTwoFactorRememberBrowser"

# Cookie suffix carrying the external provider token after the OAuth callback
EXTERNAL_LOGIN_COOKIE_SUFFIX = ".ExternalLogin"

SESSION_COOKIE_NAME = "cms_session"
