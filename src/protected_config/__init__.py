"""protected-config - transparent encryption of configuration values.

Configuration values written as ``Protect:{secret}`` are encrypted ahead of
time into ``Protected:{ciphertext}`` tokens, and decrypted transparently when
the configuration is loaded.

## Modules

### Grammar (`protected_config.grammar`)
Token regexes and replacement template.

### Providers (`protected_config.providers`)
Protect providers: passthrough, Fernet with per-purpose key derivation, chained.

### Provider configuration data (`protected_config.provider_data`)
Grammar plus provider, validated and mergeable.

### Encryptor (`protected_config.encryptor`) and processors (`protected_config.processors`)
Offline protection of values, environment variables and files.

### Provider decorator and builder (`protected_config.provider`, `protected_config.builder`)
Decrypt-on-load wrapping of any configuration provider.

## Quick start

```python
from protected_config import ProtectedConfigurationBuilder, fernet_configuration_data

data = fernet_configuration_data(master_key)
builder = ProtectedConfigurationBuilder(data)
builder.add_json_file("appsettings.json")
configuration = builder.build()
configuration["database:password"]
```
"""

from .builder import ProtectedConfigurationBuilder
from .encryptor import (
    protect_configuration_value,
    protect_environment_variables,
    protect_files,
    unprotect_configuration_value,
)
from .errors import ConfigurationShapeError, DecryptionError, ProtectedConfigurationError
from .grammar import (
    DEFAULT_PROTECT_REGEX_STRING,
    DEFAULT_PROTECTED_REGEX_STRING,
    DEFAULT_PROTECTED_REPLACE_STRING,
    TokenGrammar,
)
from .processors import (
    FileProtectOption,
    FileProtectOptionRegistry,
    FileProtectProcessor,
    JsonFileProtectProcessor,
    JsonWithCommentsFileProtectProcessor,
    RawFileProtectProcessor,
    XmlFileProtectProcessor,
)
from .provider import ProtectedConfigurationProvider
from .provider_data import (
    ProtectProviderConfigurationData,
    fernet_configuration_data,
    merge,
    passthrough_configuration_data,
)
from .providers import (
    ChainedProtectProvider,
    FernetProtectProvider,
    PassthroughProtectProvider,
    ProtectProvider,
    key_number_purpose,
    string_purpose,
)

__version__ = "0.1.0"

__all__ = [
    # Grammar
    "DEFAULT_PROTECT_REGEX_STRING",
    "DEFAULT_PROTECTED_REGEX_STRING",
    "DEFAULT_PROTECTED_REPLACE_STRING",
    "TokenGrammar",
    # Providers
    "ProtectProvider",
    "PassthroughProtectProvider",
    "FernetProtectProvider",
    "ChainedProtectProvider",
    "key_number_purpose",
    "string_purpose",
    # Configuration data
    "ProtectProviderConfigurationData",
    "merge",
    "passthrough_configuration_data",
    "fernet_configuration_data",
    # Encryption
    "protect_configuration_value",
    "unprotect_configuration_value",
    "protect_environment_variables",
    "protect_files",
    "FileProtectProcessor",
    "RawFileProtectProcessor",
    "JsonFileProtectProcessor",
    "JsonWithCommentsFileProtectProcessor",
    "XmlFileProtectProcessor",
    "FileProtectOption",
    "FileProtectOptionRegistry",
    # Decryption
    "ProtectedConfigurationProvider",
    "ProtectedConfigurationBuilder",
    # Errors
    "ProtectedConfigurationError",
    "ConfigurationShapeError",
    "DecryptionError",
]
