from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from ...api import deps
from ...core.errors import ConflictError
from ...db.session import get_db
from ...db import models, schemas

router = APIRouter(tags=["catalog"])


def _create(db: Session, instance):
    db.add(instance)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Record already exists", "DUPLICATE") from exc
    db.refresh(instance)
    return instance


@router.get("/class-types", response_model=list[schemas.ClassType])
def list_class_types(include_inactive: bool = False, db: Session = Depends(get_db)):
    query = db.query(models.ClassType)
    if not include_inactive:
        query = query.filter(models.ClassType.is_active.is_(True))
    return query.order_by(models.ClassType.name).all()


@router.post("/class-types", response_model=schemas.ClassType, status_code=status.HTTP_201_CREATED)
def create_class_type(
    payload: schemas.ClassTypeCreate,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    return _create(db, models.ClassType(**payload.model_dump()))


@router.get("/instructors", response_model=list[schemas.Instructor])
def list_instructors(include_inactive: bool = False, db: Session = Depends(get_db)):
    query = db.query(models.Instructor)
    if not include_inactive:
        query = query.filter(models.Instructor.is_active.is_(True))
    return query.order_by(models.Instructor.name).all()


@router.post("/instructors", response_model=schemas.Instructor, status_code=status.HTTP_201_CREATED)
def create_instructor(
    payload: schemas.InstructorCreate,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    return _create(db, models.Instructor(**payload.model_dump()))


@router.get("/packages", response_model=list[schemas.Package])
def list_packages(include_inactive: bool = False, db: Session = Depends(get_db)):
    query = db.query(models.Package)
    if not include_inactive:
        query = query.filter(models.Package.is_active.is_(True))
    return query.order_by(models.Package.price).all()


@router.post("/packages", response_model=schemas.Package, status_code=status.HTTP_201_CREATED)
def create_package(
    payload: schemas.PackageCreate,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    return _create(db, models.Package(**payload.model_dump()))


@router.get("/memberships", response_model=list[schemas.Membership])
def list_memberships(include_inactive: bool = False, db: Session = Depends(get_db)):
    query = db.query(models.Membership)
    if not include_inactive:
        query = query.filter(models.Membership.is_active.is_(True))
    return query.order_by(models.Membership.price_monthly).all()


@router.post("/memberships", response_model=schemas.Membership, status_code=status.HTTP_201_CREATED)
def create_membership(
    payload: schemas.MembershipCreate,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    return _create(db, models.Membership(**payload.model_dump()))
