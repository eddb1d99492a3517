"""fieldcrypt Meta information.
   fieldcrypt protects sensitive record fields with authenticated
   encryption and hashes user credentials.
"""
__title__ = 'fieldcrypt'
__description__ = (
   'Field-level AES-GCM encryption and bcrypt credential hashing '
   'for user records.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
