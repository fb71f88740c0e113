from fastapi import APIRouter, Depends

from globetrotter.dependencies import get_current_user, get_profile_service
from globetrotter.models.user import (
    DeleteAccountRequest,
    PasswordChange,
    PreferencesUpdate,
    ProfileUpdate,
    SavedDestinationInput,
)
from globetrotter.responses import ok
from globetrotter.services.profile_service import ProfileService

router = APIRouter()


@router.get("")
def get_profile(user=Depends(get_current_user), profiles: ProfileService = Depends(get_profile_service)):
    return ok({"user": profiles.get_profile(user["id"])})


@router.put("")
def update_profile(body: ProfileUpdate, user=Depends(get_current_user),
                   profiles: ProfileService = Depends(get_profile_service)):
    return ok({"user": profiles.update_profile(user["id"], body)}, "Profile updated successfully")


@router.put("/password")
def change_password(body: PasswordChange, user=Depends(get_current_user),
                    profiles: ProfileService = Depends(get_profile_service)):
    profiles.change_password(user["id"], body)
    return ok(None, "Password changed successfully")


@router.put("/preferences")
def update_preferences(body: PreferencesUpdate, user=Depends(get_current_user),
                       profiles: ProfileService = Depends(get_profile_service)):
    updated = profiles.update_preferences(user["id"], body)
    return ok({"preferences": updated["preferences"]}, "Preferences updated successfully")


@router.get("/saved-destinations")
def list_saved_destinations(user=Depends(get_current_user),
                            profiles: ProfileService = Depends(get_profile_service)):
    return ok({"savedDestinations": profiles.list_saved_destinations(user["id"])})


@router.post("/saved-destinations", status_code=201)
def add_saved_destination(body: SavedDestinationInput, user=Depends(get_current_user),
                          profiles: ProfileService = Depends(get_profile_service)):
    entry = profiles.add_saved_destination(user["id"], body)
    return ok({"destination": entry}, "Destination saved successfully")


@router.delete("/saved-destinations/{destination_id}")
def remove_saved_destination(destination_id: str, user=Depends(get_current_user),
                             profiles: ProfileService = Depends(get_profile_service)):
    profiles.remove_saved_destination(user["id"], destination_id)
    return ok(None, "Destination removed successfully")


@router.delete("")
def delete_account(body: DeleteAccountRequest, user=Depends(get_current_user),
                   profiles: ProfileService = Depends(get_profile_service)):
    profiles.delete_account(user["id"], body.password)
    return ok(None, "Account deleted successfully")


@router.get("/export")
def export_data(user=Depends(get_current_user), profiles: ProfileService = Depends(get_profile_service)):
    return ok(profiles.export_data(user["id"]))
