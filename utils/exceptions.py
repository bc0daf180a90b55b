"""Custom exception hierarchy for the gallery bot.

This module defines a hierarchy of custom exceptions for standardized error handling
throughout the bot. These exceptions are raised by the gallery store and the
interaction handlers, and are converted into user-facing embeds at the
interaction router boundary.
"""


class GalleryBotError(Exception):
    """Base exception for all bot errors."""

    def __init__(self, message: str = "An error occurred", *args, **kwargs) -> None:
        self.message = message
        super().__init__(message, *args, **kwargs)


# Input Validation Errors


class UserInputError(GalleryBotError):
    """Errors caused by invalid user input."""

    def __init__(self, message: str = "Invalid user input", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class ValidationError(UserInputError):
    """Errors caused by input validation failures."""

    def __init__(self, field: str = None, message: str = None, *args, **kwargs) -> None:
        self.field = field
        if field and not message:
            message = f"Invalid value for {field}"
        elif not message:
            message = "Validation failed"
        super().__init__(message, *args, **kwargs)


class FormatError(UserInputError):
    """Errors caused by incorrectly formatted input."""

    def __init__(
        self, expected_format: str = None, message: str = None, *args, **kwargs
    ) -> None:
        self.expected_format = expected_format
        if expected_format and not message:
            message = f"Input has incorrect format. Expected: {expected_format}"
        elif not message:
            message = "Input has incorrect format"
        super().__init__(message, *args, **kwargs)


class ImageIndexError(UserInputError):
    """Raised when an image number falls outside a gallery's image sequence."""

    def __init__(self, index: int | None, image_count: int, *args, **kwargs) -> None:
        self.index = index
        self.image_count = image_count
        if image_count == 0:
            message = "Gallery is empty :stop_sign:"
        elif image_count == 1:
            message = "Invalid image number :stop_sign: (Only image number 0 exists.)"
        else:
            message = (
                "Invalid image number :stop_sign: "
                f"(Valid image numbers include 0 through {image_count - 1} inclusive.)"
            )
        super().__init__(message, *args, **kwargs)


class EmptyGalleryError(ImageIndexError):
    """Raised when an image is requested from a gallery with no images."""

    def __init__(self, gallery_name: str | None = None, index: int | None = None, *args, **kwargs) -> None:
        self.gallery_name = gallery_name
        super().__init__(index, 0, *args, **kwargs)


# Resource Errors


class ResourceNotFoundError(GalleryBotError):
    """Errors when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: str | None = None,
        message: str | None = None,
        *args,
        **kwargs,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id

        if message is None:
            if resource_id:
                message = f"{resource_type.capitalize()} {resource_id} not found"
            else:
                message = f"{resource_type.capitalize()} not found"

        super().__init__(message, *args, **kwargs)


class GalleryNotFoundError(ResourceNotFoundError):
    """Raised when a gallery with the given name does not exist."""

    def __init__(self, gallery_name: str | None = None, *args, **kwargs) -> None:
        self.gallery_name = gallery_name
        super().__init__(
            "gallery", gallery_name, "Gallery does not exist :stop_sign:", *args, **kwargs
        )


class ResourceAlreadyExistsError(GalleryBotError):
    """Errors when attempting to create a resource that already exists."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: str | None = None,
        message: str | None = None,
        *args,
        **kwargs,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id

        if message is None:
            if resource_id:
                message = f"{resource_type.capitalize()} {resource_id} already exists"
            else:
                message = f"{resource_type.capitalize()} already exists"

        super().__init__(message, *args, **kwargs)


class GalleryAlreadyExistsError(ResourceAlreadyExistsError):
    """Raised when creating a gallery whose name is taken."""

    def __init__(self, gallery_name: str | None = None, *args, **kwargs) -> None:
        self.gallery_name = gallery_name
        super().__init__(
            "gallery", gallery_name, "Gallery already exists :stop_sign:", *args, **kwargs
        )


# Database Errors


class DatabaseError(GalleryBotError):
    """Errors related to database operations."""

    def __init__(self, message: str = "Database operation failed", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class StoreUnavailableError(DatabaseError):
    """Raised when the gallery store cannot complete an operation."""

    def __init__(
        self,
        operation: str = "unknown",
        gallery_name: str | None = None,
        message: str | None = None,
        *args,
        **kwargs,
    ) -> None:
        self.operation = operation
        self.gallery_name = gallery_name
        if message is None:
            message = f"Gallery store failed during {operation}"
            if gallery_name:
                message += f" on {gallery_name!r}"
        super().__init__(message, *args, **kwargs)


class WriteConflictError(StoreUnavailableError):
    """Raised when a gallery write keeps losing to concurrent writers."""

    def __init__(
        self, operation: str, gallery_name: str, attempts: int, *args, **kwargs
    ) -> None:
        self.attempts = attempts
        super().__init__(
            operation,
            gallery_name,
            f"Gave up on {operation} for {gallery_name!r} after {attempts} conflicting writes",
            *args,
            **kwargs,
        )


# Interaction Errors


class InteractionError(GalleryBotError):
    """Errors related to Discord interaction handling."""

    def __init__(self, message: str = "Interaction handling failed", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class UnrecognizedInteractionError(InteractionError):
    """Raised when no handler is registered for a command, subcommand or component."""

    def __init__(self, kind: str, name: str | None, *args, **kwargs) -> None:
        self.kind = kind
        self.name = name
        if kind == "subcommand":
            message = "Invalid subcommand :stop_sign:"
        elif kind == "component":
            message = "That button is no longer supported :stop_sign:"
        elif kind == "interaction_type":
            message = (
                "I didn't expect to be interacted with in this way :flushed:\n"
                "Perhaps someone should look into this :thinking:"
            )
        else:
            message = "Invalid command :stop_sign:"
        super().__init__(message, *args, **kwargs)


class PromptFormatError(FormatError):
    """Raised when a confirmation prompt's embedded payload cannot be parsed."""

    def __init__(self, detail: str, *args, **kwargs) -> None:
        self.detail = detail
        super().__init__(
            "confirmation prompt",
            "This confirmation prompt is malformed and cannot be acted on :stop_sign:",
            *args,
            **kwargs,
        )


class StaleConfirmationError(InteractionError):
    """Raised when the image at a prompt's index changed before confirmation."""

    def __init__(self, gallery_name: str, index: int, *args, **kwargs) -> None:
        self.gallery_name = gallery_name
        self.index = index
        super().__init__(
            f"Image `{index}` in `{gallery_name}` changed since this prompt was shown "
            "and was not removed :stop_sign:",
            *args,
            **kwargs,
        )


class PromptAlreadyResolvedError(InteractionError):
    """Raised when a confirmation prompt is clicked after it was resolved."""

    def __init__(self, message_id: int | None = None, *args, **kwargs) -> None:
        self.message_id = message_id
        super().__init__(
            "This confirmation has already been resolved :stop_sign:", *args, **kwargs
        )
