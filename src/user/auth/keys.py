"""
Signing keys and the key ring used to issue and verify tokens.

A key ring holds one active key (used for signing) and any number of retired
keys that are still accepted for verification, so keys can be rotated while
the service keeps running. Tokens name their key through the `kid` header.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace

from jwt.algorithms import get_default_algorithms

from loggers import get_logger
from src.core.errors.exceptions import SigningError
from src.main.config import JWTConfig

logger = get_logger(__name__)

HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})

KeyMaterial = str | bytes


@dataclass(frozen=True, slots=True)
class SigningKey:
    kid: str
    algorithm: str
    verification_material: KeyMaterial
    signing_material: KeyMaterial | None = None

    def __post_init__(self) -> None:
        if not self.algorithm or self.algorithm.lower() == "none":
            raise ValueError("Unsigned tokens are not supported")
        if self.algorithm not in get_default_algorithms():
            raise ValueError(
                f"Algorithm {self.algorithm!r} is not available "
                "(asymmetric algorithms need the 'cryptography' package)"
            )
        if not self.verification_material:
            raise ValueError(f"Key {self.kid!r} has no verification material")

    @property
    def is_symmetric(self) -> bool:
        return self.algorithm in HMAC_ALGORITHMS

    @property
    def can_sign(self) -> bool:
        return bool(self.signing_material)

    @classmethod
    def from_secret(
        cls, secret: KeyMaterial, *, kid: str, algorithm: str = "HS256"
    ) -> "SigningKey":
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"{algorithm} is not a shared-secret algorithm")
        return cls(
            kid=kid,
            algorithm=algorithm,
            verification_material=secret,
            signing_material=secret,
        )

    @classmethod
    def from_pem(
        cls,
        public_key: KeyMaterial,
        private_key: KeyMaterial | None = None,
        *,
        kid: str,
        algorithm: str = "RS256",
    ) -> "SigningKey":
        if algorithm in HMAC_ALGORITHMS:
            raise ValueError(f"{algorithm} needs a shared secret, not a key pair")
        return cls(
            kid=kid,
            algorithm=algorithm,
            verification_material=public_key,
            signing_material=private_key,
        )

    def retired(self) -> "SigningKey":
        """Verification-only copy of this key."""
        return replace(self, signing_material=None)


class KeyRing:
    def __init__(
        self, active: SigningKey | None = None, retired: Iterable[SigningKey] = ()
    ) -> None:
        keys = {key.kid: key.retired() for key in retired}
        if active is not None:
            keys[active.kid] = active
        self._keys: dict[str, SigningKey] = keys
        self._active_kid = active.kid if active is not None else None

    @property
    def active(self) -> SigningKey:
        """
        The key new tokens are signed with.

        Raises:
            SigningError: If no key is active or the active key cannot sign
        """
        if self._active_kid is None:
            raise SigningError("No active signing key configured")
        key = self._keys.get(self._active_kid)
        if key is None or not key.can_sign:
            raise SigningError(
                "Signing key unavailable", additional_info={"kid": self._active_kid}
            )
        return key

    @property
    def kids(self) -> list[str]:
        return sorted(self._keys)

    def get(self, kid: str | None) -> SigningKey | None:
        """Key for a token header; tokens without a kid use the active key."""
        if kid is None:
            kid = self._active_kid
        if kid is None:
            return None
        return self._keys.get(kid)

    def rotate(self, new_key: SigningKey, *, keep_previous: bool = True) -> None:
        """
        Make new_key the active key. The previous key stays valid for
        verification unless keep_previous is False.
        """
        if not new_key.can_sign:
            raise ValueError(f"Key {new_key.kid!r} cannot sign")

        keys = dict(self._keys)
        previous = self._active_kid
        if previous is not None and previous != new_key.kid:
            if keep_previous:
                keys[previous] = keys[previous].retired()
            else:
                keys.pop(previous, None)
        keys[new_key.kid] = new_key

        # Swap whole mappings so readers never see a half-updated ring
        self._keys = keys
        self._active_kid = new_key.kid
        logger.info("[KeyRing] Rotated signing key %s -> %s", previous, new_key.kid)

    def retire(self, kid: str) -> None:
        if kid == self._active_kid:
            raise ValueError("The active key cannot be retired, rotate first")
        keys = dict(self._keys)
        if keys.pop(kid, None) is not None:
            self._keys = keys
            logger.info("[KeyRing] Dropped key %s", kid)


def _unescape_pem(value: str) -> str:
    return value.replace("\\n", "\n")


def build_key_ring(jwt_config: JWTConfig) -> KeyRing:
    """
    Build the key ring from settings.

    A key pair wins over a shared secret. With neither configured the ring has
    no active key and issuance fails with SigningError.
    """
    algorithm = jwt_config.JWT_ALGORITHM
    active: SigningKey | None = None

    if jwt_config.JWT_PUBLIC_KEY:
        active = SigningKey.from_pem(
            _unescape_pem(jwt_config.JWT_PUBLIC_KEY),
            _unescape_pem(jwt_config.JWT_PRIVATE_KEY)
            if jwt_config.JWT_PRIVATE_KEY
            else None,
            kid=jwt_config.JWT_KEY_ID,
            algorithm=algorithm,
        )
    elif jwt_config.JWT_SECRET_KEY:
        active = SigningKey.from_secret(
            jwt_config.JWT_SECRET_KEY, kid=jwt_config.JWT_KEY_ID, algorithm=algorithm
        )
    else:
        logger.warning("[KeyRing] No signing key configured, issuance is disabled")

    previous_algorithm = algorithm if algorithm in HMAC_ALGORITHMS else "HS256"
    retired: list[SigningKey] = []
    for item in jwt_config.JWT_PREVIOUS_KEYS:
        kid, sep, secret = item.partition(":")
        if not sep or not kid or not secret:
            raise ValueError("JWT_PREVIOUS_KEYS items must look like 'kid:secret'")
        retired.append(
            SigningKey.from_secret(secret, kid=kid, algorithm=previous_algorithm)
        )

    return KeyRing(active=active, retired=retired)
