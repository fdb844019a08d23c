"""
Add-on store: creation, revisions, moderation status and deletion.

All mutating operations check permissions through the injected permission
service, write in a single database transaction and then fan out to the
notifier, the catalog regenerator and the audit log.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from addon_decorators import tracked_operation
from constants import ADDON_TYPE_KART, ALLOWED_ADDON_TYPES, PERM_EDIT_ADDONS, VERSION_STRING_PATTERN
from db import db
from exceptions import (
    AuthenticationException,
    AuthorizationException,
    ConsistencyException,
    DatabaseException,
    FileException,
    NotFoundException,
    ValidationException,
)
from models.status import (
    FLAG_TOKENS,
    MODERATOR_FLAGS,
    USER_FLAGS,
    RevisionStatus,
    is_approved,
    is_latest,
    upload_status,
)
from models.user import User
from repositories.addons_repository import AddonsRepository
from repositories.base_repository import Repository
from repositories.files_repository import FilesRepository
from repositories.revisions_repository import RevisionsRepository
from services.image_dedup_service import ImageDeduplicator
from services.slug_service import clean_id, generate_id
from utils import normalize_newlines, strip_tags

logger = structlog.get_logger("addons")

# Attempts at inserting a revision when a concurrent upload took the same number
REVISION_INSERT_ATTEMPTS = 3

_VERSION_STRING = re.compile(VERSION_STRING_PATTERN, re.IGNORECASE)


@dataclass
class AddonAttributes:
    """Properties of an uploaded revision, as read from its archive"""

    name: str
    file_id: int
    version: str
    status: int = 0
    image: int = 0
    designer: Optional[str] = None
    license: str = ""
    description: str = ""
    missing_textures: List[str] = field(default_factory=list)


@dataclass
class StatusUpdateRequest:
    """
    Submitted moderation form.

    tokens: checkbox names, "<flag>-<revision>" or "latest"
    values: token -> submitted value ("on" for a ticked box); values["latest"]
        holds the revision number to flag as latest
    """

    tokens: List[str]
    values: Dict[str, str] = field(default_factory=dict)


@dataclass
class NotesUpdateRequest:
    """Submitted moderator notes: tokens are "notes-<revision>"."""

    tokens: List[str]
    values: Dict[str, str] = field(default_factory=dict)


@dataclass
class PartialFailure:
    step: str
    target: str
    message: str


@dataclass
class DeleteResult:
    addon_id: str
    warnings: List[PartialFailure] = field(default_factory=list)

    @property
    def complete(self):
        return not self.warnings


def validate_version_string(version):
    if not isinstance(version, str) or not _VERSION_STRING.match(version):
        raise ValidationException(f"Invalid version string! Format should be: W.X.Y[-rcZ] ({version})")
    return version


def compose_notes_email(notes):
    """Uploader message for moderator notes, newest revision first"""
    body = ""
    for revision in sorted(notes, reverse=True):
        note = strip_tags(normalize_newlines(notes[revision]))
        body += f"\n== Revision {revision} ==\n{note}\n\n"
    return body


def with_texture_warnings(message, missing_textures):
    message = message or ""
    for texture in missing_textures or []:
        message += f"Texture not found: {texture}\n"
    return message


class AddonService:
    def __init__(
        self,
        permissions,
        storage,
        notifier,
        audit,
        catalog,
        cache,
        deduplicator=None,
        addons_repository=None,
        files_repository=None,
    ):
        self.permissions = permissions
        self.storage = storage
        self.notifier = notifier
        self.audit = audit
        self.catalog = catalog
        self.cache = cache
        self.addons = addons_repository or AddonsRepository()
        self.files = files_repository or FilesRepository()
        self.deduplicator = deduplicator or ImageDeduplicator(storage, self.files)
        self.users = Repository(User)

    # Permission helpers

    def _is_uploader(self, addon):
        user_id = self.permissions.current_user_id()
        return user_id is not None and user_id == addon.uploader

    def _can_moderate(self):
        return self.permissions.has_permission(PERM_EDIT_ADDONS)

    def _require_login(self, message="You must be logged in to perform this action."):
        if not self.permissions.is_logged_in():
            raise AuthenticationException(message)

    def _require_edit(self, addon, message="You do not have the necessary permissions to perform this action."):
        if not (self._is_uploader(addon) or self._can_moderate()):
            raise AuthorizationException(message)

    def _require_moderator(self, message="You do not have the necessary permissions to perform this action."):
        if not self._can_moderate():
            raise AuthorizationException(message)

    # Persistence helpers

    def _revisions(self, addon_type):
        try:
            return RevisionsRepository(addon_type)
        except ValueError:
            raise ValidationException("An invalid add-on type was provided.")

    def _commit(self, message):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("addon_commit_failed", error=str(e))
            raise DatabaseException(message)

    def _update_addon(self, addon, message, **values):
        for key, value in values.items():
            setattr(addon, key, value)
        self._commit(message)

    def _regenerate_catalogs(self):
        self.catalog.regenerate_asset_catalog()
        self.catalog.regenerate_news_catalog()

    @staticmethod
    def _revision_number(raw, revisions, addon):
        try:
            number = int(raw)
        except (TypeError, ValueError):
            raise ValidationException(f"Invalid revision number: {raw}")
        if number not in revisions:
            raise NotFoundException(f"The revision {number} of '{addon.id}' does not exist.")
        return number

    # Reads

    def exists(self, addon_id):
        addon_id = clean_id(addon_id)
        if not addon_id:
            return False
        try:
            return self.addons.exists(addon_id)
        except SQLAlchemyError as e:
            logger.error("addon_lookup_failed", addon_id=addon_id, error=str(e))
            raise DatabaseException("Failed to look up the add-on.")

    def get(self, addon_id):
        addon_id = clean_id(addon_id)
        try:
            addon = self.addons.get_by_id(addon_id) if addon_id else None
        except SQLAlchemyError as e:
            logger.error("addon_lookup_failed", addon_id=addon_id, error=str(e))
            raise DatabaseException("Failed to read the requested add-on's information.")
        if addon is None:
            raise NotFoundException("The requested add-on does not exist.")
        return addon

    def load_revisions(self, addon):
        """
        Revisions of an add-on, keyed by revision number in ascending order.

        Raises:
            DatabaseException: if the revision table cannot be read
            ConsistencyException: if the add-on has no revision
        """
        revisions_repository = self._revisions(addon.type)
        try:
            revisions = revisions_repository.get_for_addon(addon.id)
        except SQLAlchemyError as e:
            logger.error("revisions_read_failed", addon_id=addon.id, error=str(e))
            raise DatabaseException("Failed to read the requested add-on's revision information.")
        if not revisions:
            raise ConsistencyException("No revisions of this add-on exist. This should never happen.")
        return revisions

    def get_latest_revision(self, addon):
        revisions_repository = self._revisions(addon.type)
        try:
            return revisions_repository.get_latest(addon.id)
        except SQLAlchemyError as e:
            logger.error("latest_revision_read_failed", addon_id=addon.id, error=str(e))
            raise DatabaseException("Failed to read the requested add-on's revision information.")

    def get_status(self, addon):
        latest = self.get_latest_revision(addon)
        if latest is None:
            return RevisionStatus.NONE
        return latest.flags

    def has_approved_revision(self, addon):
        return any(is_approved(revision.status) for revision in self.load_revisions(addon).values())

    def search(self, query, include_description=True):
        try:
            return self.addons.search(query, search_description=include_description)
        except SQLAlchemyError as e:
            logger.error("addon_search_failed", query=query, error=str(e))
            raise DatabaseException("Search failed!")

    def list_by_type(self, addon_type, featured_first=False):
        """Ids of the add-ons of a type that have a latest revision"""
        if addon_type not in ALLOWED_ADDON_TYPES:
            return []
        try:
            return self.addons.list_ids_by_type(addon_type, featured_first=featured_first)
        except SQLAlchemyError as e:
            logger.error("addon_list_failed", addon_type=addon_type, error=str(e))
            raise DatabaseException("Failed to read the list of add-ons.")

    def get_file_path(self, addon, revision):
        """Path of a revision's content file, relative to the upload root"""
        revisions = self.load_revisions(addon)
        number = self._revision_number(revision, revisions, addon)
        record = self.files.get_by_id(revisions[number].fileid)
        if record is None:
            raise NotFoundException("The requested file does not have an associated file record.")
        return record.file_path

    def get_images(self, addon):
        return self.files.get_images(addon.id)

    def get_source_files(self, addon):
        return self.files.get_sources(addon.id)

    # Creation

    @tracked_operation("create")
    def create(self, addon_type, attributes, upload_id, moderator_message=""):
        """
        Create an add-on and its first revision.

        Args:
            addon_type: one of ALLOWED_ADDON_TYPES
            attributes: AddonAttributes of the uploaded archive
            upload_id: upload identifier, becomes the revision id
            moderator_message: notes for the moderators

        Returns:
            Addon: the new add-on
        """
        moderator_message = with_texture_warnings(moderator_message, attributes.missing_textures)
        self._require_login("You must be logged in to create an add-on.")
        if addon_type not in ALLOWED_ADDON_TYPES:
            raise ValidationException("An invalid add-on type was provided.")

        revisions = self._revisions(addon_type)
        try:
            addon_id = generate_id(attributes.name, self.addons.exists)
            duplicate = revisions.upload_exists(upload_id)
        except SQLAlchemyError as e:
            logger.error("addon_create_lookup_failed", addon_type=addon_type, error=str(e))
            raise DatabaseException(f"Failed to read the {addon_type} revisions.")
        if duplicate:
            raise ConsistencyException("The add-on you are trying to create already exists.")

        image = attributes.image or 0
        is_kart = addon_type == ADDON_TYPE_KART
        revision_fields = {
            "id": upload_id,
            "addon_id": addon_id,
            "fileid": attributes.file_id,
            "revision": 1,
            "format": attributes.version,
            "image": image,
            "status": upload_status(attributes.status),
            "moderator_note": moderator_message,
        }
        if is_kart:
            revision_fields["icon"] = image

        try:
            addon = self.addons.add(
                id=addon_id,
                type=addon_type,
                name=attributes.name,
                uploader=self.permissions.current_user_id(),
                designer=attributes.designer,
                description=attributes.description,
                license=attributes.license,
                image=image,
                icon=image if is_kart else 0,
            )
            # The revision row references the add-on row
            db.session.flush()
            revisions.add(**revision_fields)
            self.files.attach_to_addon([attributes.file_id, image], addon_id)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("addon_create_failed", addon_id=addon_id, error=str(e))
            raise DatabaseException("Your add-on could not be uploaded.")

        logger.info("addon_created", addon_id=addon_id, addon_type=addon_type, upload_id=upload_id)
        self.notifier.send_moderator_notice(
            "New Addon Upload",
            f"{self.permissions.current_user_name()} has uploaded a new {addon_type} '{attributes.name}' {addon_id}",
        )
        self._regenerate_catalogs()
        self.audit.record(f"New add-on '{attributes.name}'", addon_id=addon_id)
        return addon

    @tracked_operation("create_revision")
    def create_revision(self, addon, attributes, upload_id, moderator_message=""):
        """
        Add a revision numbered one above the current highest.

        The new revision is not flagged latest; that is a moderation step.
        """
        moderator_message = with_texture_warnings(moderator_message, attributes.missing_textures)
        self._require_login("You must be logged in to create an add-on revision.")

        revisions = self._revisions(addon.type)
        try:
            duplicate = revisions.upload_exists(upload_id)
        except SQLAlchemyError as e:
            logger.error("revision_lookup_failed", addon_id=addon.id, error=str(e))
            raise DatabaseException(f"Failed to read the {addon.type} revisions.")
        if duplicate:
            raise ConsistencyException("The file you are trying to create already exists.")

        self._require_edit(addon, "You do not have the necessary permissions to create a revision of this add-on.")

        image = attributes.image or 0
        if image:
            image = self.deduplicator.dedupe(addon.id, image) or image

        addon_id = addon.id
        revision = None
        for attempt in range(1, REVISION_INSERT_ATTEMPTS + 1):
            try:
                number = revisions.next_revision_number(addon_id)
                revision_fields = {
                    "id": upload_id,
                    "addon_id": addon_id,
                    "fileid": attributes.file_id,
                    "revision": number,
                    "format": attributes.version,
                    "image": image,
                    "status": upload_status(attributes.status),
                    "moderator_note": moderator_message,
                }
                if addon.type == ADDON_TYPE_KART:
                    revision_fields["icon"] = image
                revision = revisions.add(**revision_fields)
                addon.name = attributes.name
                addon.license = attributes.license
                self.files.attach_to_addon([attributes.file_id, image], addon_id)
                db.session.commit()
                break
            except IntegrityError as e:
                db.session.rollback()
                if attempt == REVISION_INSERT_ATTEMPTS:
                    logger.error("revision_create_failed", addon_id=addon_id, error=str(e))
                    raise DatabaseException("Failed to create add-on revision.")
                logger.warning("revision_number_taken", addon_id=addon_id, attempt=attempt)
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error("revision_create_failed", addon_id=addon_id, error=str(e))
                raise DatabaseException("Failed to create add-on revision.")

        logger.info("revision_created", addon_id=addon_id, revision=revision.revision, upload_id=upload_id)
        self.notifier.send_moderator_notice(
            "New Addon Upload",
            f"{self.permissions.current_user_name()} has uploaded a new revision for "
            f"{addon.type} '{attributes.name}' {addon_id}",
        )
        self._regenerate_catalogs()
        self.audit.record(f"New add-on revision for '{attributes.name}'", addon_id=addon_id)
        return revision

    # Moderation

    @tracked_operation("set_status")
    def set_status(self, addon, request):
        """
        Apply a moderation form to every revision of an add-on.

        Returns:
            dict: revision number -> resulting RevisionStatus
        """
        self._require_edit(addon)
        moderator = self._can_moderate()
        revisions = self.load_revisions(addon)

        latest_requested = "latest" in request.tokens
        mask = USER_FLAGS
        if moderator:
            mask |= MODERATOR_FLAGS
        if latest_requested:
            mask |= RevisionStatus.LATEST

        status = {number: int(revision.status or 0) & ~int(mask) for number, revision in revisions.items()}

        for token in request.tokens:
            if token == "latest":
                number = self._revision_number(request.values.get("latest"), revisions, addon)
                status[number] |= int(RevisionStatus.LATEST)
                continue

            flag_name, _, raw_number = token.partition("-")
            flag = FLAG_TOKENS.get(flag_name)
            if flag is None:
                raise ValidationException(f"Unknown status flag: {flag_name}")
            number = self._revision_number(raw_number, revisions, addon)

            if request.values.get(token) != "on":
                continue
            # Moderator-only flags from other users are ignored
            if not flag & mask:
                continue
            status[number] |= int(flag)

        latest = [number for number, value in status.items() if value & RevisionStatus.LATEST]
        if len(latest) != 1:
            raise ValidationException("Exactly one revision must be flagged as the latest revision.")

        latest_revision = revisions[latest[0]]
        try:
            for number, revision in revisions.items():
                revision.status = status[number]
            addon.image = latest_revision.image or 0
            addon.icon = latest_revision.icon_id
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("status_write_failed", addon_id=addon.id, error=str(e))
            raise DatabaseException("Failed to write add-on status.")

        logger.info("addon_status_set", addon_id=addon.id, latest=latest[0])
        self._regenerate_catalogs()
        self.audit.record(f"Set status for add-on '{addon.name}'", addon_id=addon.id)
        return {number: RevisionStatus(value) for number, value in status.items()}

    @tracked_operation("set_notes")
    def set_notes(self, addon, request):
        """Store moderator notes per revision and mail them to the uploader"""
        self._require_moderator()
        revisions = self.load_revisions(addon)

        notes = {}
        for token in request.tokens:
            prefix, _, raw_number = token.partition("-")
            if prefix != "notes":
                raise ValidationException(f"Invalid notes field: {token}")
            number = self._revision_number(raw_number, revisions, addon)
            notes[number] = request.values.get(token) or ""

        try:
            for number, note in notes.items():
                revisions[number].moderator_note = note
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("notes_write_failed", addon_id=addon.id, error=str(e))
            raise DatabaseException("Failed to write add-on notes.")

        uploader = self.users.get_by_id(addon.uploader) if addon.uploader else None
        if uploader is None:
            raise NotFoundException("Failed to find the uploader of this add-on.")

        self.notifier.send_uploader_notice(uploader.email, addon.id, compose_notes_email(notes))
        self.audit.record(f"Added notes to '{addon.name}'", addon_id=addon.id)
        return notes

    # Deletion

    @tracked_operation("delete_revision")
    def delete_revision(self, addon, revision):
        self._require_edit(addon, "You do not have the necessary permissions to delete this revision.")
        revisions = self.load_revisions(addon)
        if len(revisions) == 1:
            raise ConsistencyException("You cannot delete the last revision of an add-on.")

        number = self._revision_number(revision, revisions, addon)
        target = revisions[number]
        if is_latest(target.status):
            raise ConsistencyException(
                "You cannot delete the latest revision of an add-on. Please mark a different revision to be the latest revision first."
            )

        if not self.storage.queue_delete(target.fileid):
            raise FileException("The add-on file could not be queued for deletion.")

        try:
            db.session.delete(target)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("revision_delete_failed", addon_id=addon.id, revision=number, error=str(e))
            raise DatabaseException("The add-on revision could not be deleted.")

        logger.info("revision_deleted", addon_id=addon.id, revision=number)
        self._regenerate_catalogs()
        self.audit.record(f"Deleted add-on '{addon.name}' revision {number}", addon_id=addon.id)

    @tracked_operation("delete")
    def delete(self, addon):
        """
        Delete an add-on with its cache entries, files and revisions.

        Cache, file and file record removal are best effort: their failures
        are returned as warnings. Only the final removal of the revision and
        add-on rows is atomic.

        Returns:
            DeleteResult
        """
        self._require_login()
        self._require_edit(addon, "You do not have the necessary permissions to delete this add-on.")

        addon_id, addon_name, addon_type = addon.id, addon.name, addon.type
        result = DeleteResult(addon_id)

        if not self.cache.clear_addon(addon_id):
            result.warnings.append(PartialFailure("cache", addon_id, "Failed to delete add-on's cache files."))

        try:
            records = self.files.get_by_addon(addon_id)
        except SQLAlchemyError as e:
            logger.error("addon_files_read_failed", addon_id=addon_id, error=str(e))
            raise DatabaseException("Failed to find files associated with this add-on.")

        for record in records:
            if self.storage.exists(record.file_path) and not self.storage.remove_path(record.file_path):
                result.warnings.append(PartialFailure("file", record.file_path, "Failed to delete file."))

        try:
            self.files.delete_by_addon(addon_id)
        except SQLAlchemyError as e:
            logger.error("addon_file_records_delete_failed", addon_id=addon_id, error=str(e))
            result.warnings.append(
                PartialFailure("file_records", addon_id, "Failed to remove file records for this add-on.")
            )

        revisions = self._revisions(addon_type)
        try:
            revisions.delete_for_addon(addon_id)
            db.session.delete(addon)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("addon_delete_failed", addon_id=addon_id, error=str(e))
            raise DatabaseException("Failed to remove add-on.")

        for warning in result.warnings:
            logger.warning("addon_delete_incomplete", addon_id=addon_id, step=warning.step, target=warning.target)
        logger.info("addon_deleted", addon_id=addon_id, warnings=len(result.warnings))

        self._regenerate_catalogs()
        self.audit.record(f"Deleted add-on '{addon_name}'", addon_id=addon_id)
        return result

    def delete_file(self, addon, file_id):
        """Delete one file of an add-on, from disk and from the files table"""
        self._require_edit(addon, "You do not have the necessary permissions to delete this file.")
        record = self.files.get_by_id(file_id)
        if record is None or record.addon_id != addon.id:
            raise NotFoundException("The requested file does not belong to this add-on.")
        if not self.storage.delete(file_id):
            raise FileException("Failed to delete file.")
        self.audit.record(f"Deleted file {record.file_path} of '{addon.name}'", addon_id=addon.id)

    def set_file_approval(self, addon, file_id, approved=True):
        self._require_moderator()
        record = self.files.get_by_id(file_id)
        if record is None or record.addon_id != addon.id:
            raise NotFoundException("The requested file does not belong to this add-on.")
        if not self.storage.approve(file_id, approved):
            raise DatabaseException("Failed to change the approval status of the file.")
        self.catalog.regenerate_asset_catalog()

    # Setters

    def set_description(self, addon, description):
        self._require_edit(addon, "You do not have the necessary permissions to change this add-on's description.")
        self._update_addon(addon, "Failed to update the description record for this add-on.", description=description)
        self._regenerate_catalogs()

    def set_designer(self, addon, designer):
        self._require_edit(addon, "You do not have the necessary permissions to change this add-on's designer.")
        self._update_addon(addon, "Failed to update the designer of this add-on.", designer=designer)
        self._regenerate_catalogs()

    def set_license(self, addon, license):
        self._require_edit(addon, "You do not have the necessary permissions to change this add-on's license.")
        self._update_addon(addon, "Failed to update the license of this add-on.", license=license)

    def set_name(self, addon, name):
        self._require_edit(addon, "You do not have the necessary permissions to change this add-on's name.")
        if not name:
            raise ValidationException("An add-on name cannot be empty.")
        self._update_addon(addon, "Failed to update the name of this add-on.", name=name)

    def set_image(self, addon, image_id, field="image"):
        """Use an image of the add-on as image (or kart icon) of its latest revision"""
        self._require_edit(addon, "You do not have the necessary permissions to change this add-on's image.")
        if field not in ("image", "icon") or (field == "icon" and addon.type != ADDON_TYPE_KART):
            raise ValidationException(f"Invalid image field: {field}")

        latest = self.get_latest_revision(addon)
        if latest is None:
            raise ConsistencyException("This add-on has no latest revision.")

        setattr(latest, field, image_id)
        self._update_addon(addon, "Failed to update the image of this add-on.", **{field: image_id})
        self.catalog.regenerate_asset_catalog()

    def set_include_versions(self, addon, start_ver, end_ver):
        """Restrict the game versions whose release bundle includes this add-on"""
        self._require_moderator()
        validate_version_string(start_ver)
        validate_version_string(end_ver)
        self._update_addon(
            addon,
            "Failed to update the include versions of this add-on.",
            min_include_ver=start_ver,
            max_include_ver=end_ver,
        )
        self._regenerate_catalogs()
