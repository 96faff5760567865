# app/routes/users.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app import models, schemas, database, auth
from app.models import UserRole
from app.services import identity


router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


# ✅ User Registration (Normal User)
@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_user(user: schemas.UserCreate, db: Session = Depends(database.get_db)):
    new_user = identity.register_user(
        db, user.username, user.email, user.password, user.confirm_password
    )
    return {
        "message": "User registered successfully.",
        "user": schemas.UserOut.model_validate(new_user),
        "access_token": auth.create_access_token(new_user),
        "token_type": "bearer",
    }

# ✅ Admin Registration (Admin Only - Protected)
@router.post("/admin/register", status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(auth.verify_admin_user)])
def register_admin(user: schemas.UserCreate, db: Session = Depends(database.get_db)):
    new_admin = identity.register_user(
        db, user.username, user.email, user.password, user.confirm_password,
        role=UserRole.ADMIN
    )
    return {"message": f"Admin {new_admin.email} registered successfully",
            "user": schemas.UserOut.model_validate(new_admin)}

# ✅ User Login (JWT)
@router.post("/login", response_model=schemas.TokenResponse)
def login_user(user: schemas.UserLogin, db: Session = Depends(database.get_db)):
    db_user = identity.authenticate(db, user.email, user.password)
    return {
        "access_token": auth.create_access_token(db_user),
        "token_type": "bearer",
        "user": schemas.UserOut.model_validate(db_user),
    }

# ✅ Current User
@router.get("/me", response_model=schemas.UserOut)
def read_current_user(current_user: models.User = Depends(auth.get_current_user)):
    return current_user

# ✅ Change Password
@router.post("/change-password")
def change_password(
    payload: schemas.ChangePasswordRequest,
    db: Session = Depends(database.get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    identity.change_password(
        db, current_user.id,
        payload.current_password, payload.new_password, payload.confirm_new_password
    )
    return {"message": "Password changed successfully."}
