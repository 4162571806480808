"""Profile lifecycle, global identity switching and discovery import.

Every operation here is a short transaction over the injected components:
file mutations go through the SSH manager or Git mutator (each of which backs
up before writing), the record store is written once per default change,
and the audit entry is appended only after the mutation succeeded.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from gitswitch.configuration.paths import expand_tilde
from gitswitch.errors import GitSwitchError, ProfileNotFoundError, ValidationError
from gitswitch.models import (
    PROVIDER_CONFIGS,
    AuthType,
    CreateProfileInput,
    DiscoveredIdentity,
    DiscoveryOptions,
    DiscoveryResult,
    GitProvider,
    GlobalGitIdentity,
    Profile,
    SSHConfigEntry,
    UpdateProfileInput,
)
from gitswitch.models.profile import host_alias_for, profile_color
from gitswitch.orchestrator.interfaces import (
    AuditSink,
    GitConfigBackend,
    IdentityDiscovery,
    RecordStoreBackend,
    SSHManager,
)

logger = logging.getLogger(__name__)

DEFAULT_IMPORT_LABEL = "Imported"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileOrchestrator:
    """Creates, updates and removes profiles and switches the global identity."""

    def __init__(
        self,
        *,
        store: RecordStoreBackend,
        ssh: SSHManager,
        git: GitConfigBackend,
        audit: AuditSink,
        discovery: Optional[IdentityDiscovery] = None,
    ) -> None:
        self.store = store
        self.ssh = ssh
        self.git = git
        self.audit = audit
        self.discovery = discovery

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_profiles(self) -> List[Profile]:
        return self.store.get_profiles()

    def get_profile(self, profile_id: str) -> Profile:
        profile = self.store.get_profile(profile_id)
        if profile is None:
            raise ProfileNotFoundError(profile_id)
        return profile

    def get_default(self) -> Optional[Profile]:
        profiles = self.store.get_profiles()
        return next((p for p in profiles if p.is_default), profiles[0] if profiles else None)

    def get_current_global(self) -> GlobalGitIdentity:
        return self.git.get_global_config()

    def get_profile_public_key(self, profile_id: str) -> Optional[str]:
        profile = self.get_profile(profile_id)
        if not profile.ssh_key_path:
            return None
        return self.ssh.get_public_key(profile.ssh_key_path)

    @staticmethod
    def provider_hostname(provider: GitProvider | str) -> str:
        try:
            config = PROVIDER_CONFIGS[GitProvider(provider)]
        except ValueError:
            return str(provider)
        return config.ssh_hostname or GitProvider(provider).value

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_profile(self, data: CreateProfileInput | Dict[str, Any]) -> Profile:
        return self._create(_coerce(CreateProfileInput, data))

    def update_profile(self, data: UpdateProfileInput | Dict[str, Any]) -> Profile:
        update = _coerce(UpdateProfileInput, data)
        existing = self.get_profile(update.id)
        changes: List[str] = []

        merged: Dict[str, Any] = {}
        for name in ("label", "provider", "username", "email", "auth_type", "ssh_key_path", "color"):
            value = getattr(update, name)
            if value is not None and value != getattr(existing, name):
                merged[name] = value
                changes.append(name)

        if "ssh_key_path" in merged:
            merged["ssh_key_path"] = self._checked_key_path(merged["ssh_key_path"])

        auth_type = merged.get("auth_type", existing.auth_type)
        key_path = merged.get("ssh_key_path", existing.ssh_key_path)
        provider = merged.get("provider", existing.provider)

        if auth_type == AuthType.SSH and key_path:
            alias = existing.ssh_host_alias or self._free_host_alias(provider, merged.get("label", existing.label))
            if not existing.ssh_host_alias or {"ssh_key_path", "provider"} & set(merged):
                self._write_host_alias(alias, provider, key_path)
            merged["ssh_host_alias"] = alias
        elif auth_type == AuthType.HTTPS and existing.ssh_host_alias:
            self.ssh.remove_ssh_config_entry(existing.ssh_host_alias)
            merged["ssh_key_path"] = None
            merged["ssh_host_alias"] = None

        if update.token:
            self.store.store_token(existing.id, update.token)
            merged["token_id"] = existing.id
            changes.append("token")

        if update.is_default is True and not existing.is_default:
            merged["is_default"] = True
            changes.append("is_default")
        elif update.is_default is False and existing.is_default:
            merged["is_default"] = False
            if any(p.id != existing.id for p in self.store.get_profiles()):
                changes.append("is_default")
            else:
                logger.info("Ignoring unset of the only profile's default flag", extra={"profile_id": existing.id})

        merged["updated_at"] = _utcnow()
        updated = self.store.update_profile(existing.id, merged)

        self.audit.log_profile_updated(updated.id, changes)
        logger.info("Profile updated", extra={"profile_id": updated.id, "changes": changes})
        return updated

    def delete_profile(self, profile_id: str) -> Profile:
        profile = self.get_profile(profile_id)

        if profile.token_id:
            self.store.delete_token(profile.token_id)
        if profile.ssh_host_alias:
            self.ssh.remove_ssh_config_entry(profile.ssh_host_alias)

        deleted = self.store.delete_profile(profile_id, elect_successor=True)
        if deleted is None:
            raise ProfileNotFoundError(profile_id)
        self.audit.log_profile_deleted(profile_id)
        logger.info("Profile deleted", extra={"profile_id": profile_id})
        return deleted

    def set_default(self, profile_id: str) -> Profile:
        return self.store.set_default_profile(profile_id)

    def switch_global(self, profile_id: str) -> Dict[str, Any]:
        """Write the profile's identity into the global git config and make it default."""
        profile = self.get_profile(profile_id)
        logger.info("Switching global identity", extra={"profile_id": profile.id})

        backup = self.git.set_global_config(email=profile.email, username=profile.username)
        self.store.set_default_profile(profile.id)
        backup_id = backup.id if backup else None
        self.audit.log(
            "profile",
            "global_switch",
            {"profile_id": profile.id, "label": profile.label, "email": profile.email},
            backup_id=backup_id,
        )
        return {
            "success": True,
            "message": f"Switched to {profile.label} ({profile.email})",
            "backup_id": backup_id,
        }

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, options: Optional[DiscoveryOptions] = None) -> DiscoveryResult:
        if self.discovery is None:
            raise ValidationError("Discovery is not configured")
        result = self.discovery.discover(options)
        self.audit.log_discovery_completed(len(result.identities), len(result.repositories))
        self.store.update_settings({"last_discovery_time": _utcnow()})
        return result

    def import_from_discovery(self, identities: Sequence[DiscoveredIdentity | Dict[str, Any]]) -> List[Profile]:
        """Create profiles from the selected identities; others are ignored.

        An identity that cannot become a valid profile is logged and skipped.
        """
        imported: List[Profile] = []
        for raw in identities:
            identity = _coerce(DiscoveredIdentity, raw)
            if not identity.selected:
                continue
            try:
                profile = self._import_one(identity)
            except (GitSwitchError, PydanticValidationError) as exc:
                logger.error(
                    "Failed to import identity",
                    extra={"identity_id": identity.id, "source": identity.source.value, "error": str(exc)},
                )
                continue
            imported.append(profile)
        return imported

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _import_one(self, identity: DiscoveredIdentity) -> Profile:
        email = identity.email or ""
        username = identity.username or (email.split("@")[0] if email else "")
        existing_alias = None
        if identity.ssh_key and identity.ssh_config and identity.ssh_config.identity_file:
            existing_alias = identity.ssh_config.host
        data = CreateProfileInput(
            label=identity.suggested_label or DEFAULT_IMPORT_LABEL,
            provider=identity.provider or GitProvider.GITHUB,
            username=username or DEFAULT_IMPORT_LABEL.lower(),
            email=email,
            auth_type=AuthType.SSH if identity.ssh_key else AuthType.HTTPS,
            ssh_key_path=identity.ssh_key.private_path if identity.ssh_key else None,
        )
        return self._create(data, existing_alias=existing_alias)

    def _create(self, data: CreateProfileInput, *, existing_alias: Optional[str] = None) -> Profile:
        logger.info("Creating profile", extra={"label": data.label, "provider": data.provider.value})
        existing_profiles = self.store.get_profiles()
        profile = Profile(
            label=data.label,
            provider=data.provider,
            username=data.username,
            email=data.email,
            auth_type=data.auth_type,
            is_default=bool(data.is_default) or not existing_profiles,
            color=data.color or profile_color(len(existing_profiles)),
        )

        if data.auth_type == AuthType.SSH:
            key_path: Optional[str] = None
            if data.generate_new_key:
                key_path = self.ssh.generate_key(data.email, data.label, "ed25519").private_path
            elif data.ssh_key_path:
                key_path = self._checked_key_path(data.ssh_key_path)
            if key_path:
                alias = existing_alias or self._free_host_alias(data.provider, data.label)
                if existing_alias is None:
                    self._write_host_alias(alias, data.provider, key_path)
                profile = profile.model_copy(update={"ssh_key_path": key_path, "ssh_host_alias": alias})
        elif data.token:
            self.store.store_token(profile.id, data.token)
            profile = profile.model_copy(update={"token_id": profile.id})

        self.store.save_profile(profile)
        self.audit.log_profile_created(profile.id, profile.label)
        logger.info("Profile created", extra={"profile_id": profile.id})
        return profile

    def _free_host_alias(self, provider: GitProvider | str, label: str) -> str:
        """``<provider>-<label>``, suffixed ``-2``, ``-3``, ... while another profile or stanza uses it."""
        base = host_alias_for(provider, label)
        taken = {p.ssh_host_alias for p in self.store.get_profiles() if p.ssh_host_alias}
        taken.update(entry.host for entry in self.ssh.get_ssh_config())
        candidate = base
        suffix = 2
        while candidate in taken:
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def _write_host_alias(self, alias: str, provider: GitProvider | str, key_path: str) -> None:
        hostname = self.provider_hostname(provider)
        self.ssh.upsert_ssh_config_entry(
            SSHConfigEntry(
                host=alias,
                host_name=hostname if hostname != GitProvider.CUSTOM.value else None,
                user="git",
                identity_file=key_path,
                identities_only=True,
            )
        )

    @staticmethod
    def _checked_key_path(raw: str) -> str:
        path = expand_tilde(raw)
        if not path.is_file():
            raise ValidationError(f"SSH key not found: {raw}", details={"ssh_key_path": raw})
        return str(Path(path))


def _coerce(model: Any, data: Any) -> Any:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {exc}") from exc
