"""Public doctor catalogue."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from medibook.schemas import DoctorScheduleOut, SafeDoctor
from medibook.services.catalogue import get_doctor, list_available_doctors, list_schedules
from medibook.services.db import get_db

router = APIRouter()


@router.get("", response_model=List[SafeDoctor])
def list_doctors(db: Session = Depends(get_db)) -> List[SafeDoctor]:
    """Doctors currently accepting bookings."""

    return [SafeDoctor.model_validate(doctor) for doctor in list_available_doctors(db)]


@router.get("/{doctor_id}", response_model=SafeDoctor)
def read_doctor(doctor_id: int, db: Session = Depends(get_db)) -> SafeDoctor:
    doctor = get_doctor(db, doctor_id)
    if doctor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    return SafeDoctor.model_validate(doctor)


@router.get("/{doctor_id}/schedules", response_model=List[DoctorScheduleOut])
def read_doctor_schedules(doctor_id: int, db: Session = Depends(get_db)) -> List[DoctorScheduleOut]:
    if get_doctor(db, doctor_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    return [DoctorScheduleOut.model_validate(item) for item in list_schedules(db, doctor_id)]
