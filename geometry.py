import numpy as np
from utils import vec, normalize, dot, length

PLANE_EPSILON = 1e-6


class Intersection:

    def __init__(self, distance, index):
        """Create an Intersection with the given data.

        Parameters:
          distance : float -- the finite, non-negative distance along the ray
          index : int -- position of the hit element in the scene's element list
        """
        if not np.isfinite(distance):
            raise ValueError(f"intersection distance must be finite, got {distance}")
        self.distance = float(distance)
        self.index = index

    def __repr__(self):
        return f"Intersection(distance={self.distance!r}, index={self.index!r})"


class Sphere:

    def __init__(self, center, radius, material):
        """Create a sphere with the given center and radius.

        Parameters:
          center : (3,) -- a 3D point specifying the sphere's center
          radius : float -- a Python float specifying the sphere's radius
          material : Material -- the material of the surface
        """
        if not radius > 0:
            raise ValueError(f"sphere radius must be positive, got {radius}")
        self.center = vec(center)
        self.radius = float(radius)
        self.material = material

    def intersect(self, ray):
        """Computes the first (smallest non-negative) distance at which ray crosses this sphere.

        Parameters:
          ray : Ray -- the ray to intersect with the sphere; direction is unit length
        Return:
          float or None -- None if the sphere is missed or lies entirely behind the ray
        """
        l = self.center - ray.origin
        adj = dot(l, ray.direction)
        d2 = dot(l, l) - adj * adj
        radius2 = self.radius * self.radius
        if d2 > radius2:
            return None

        thc = np.sqrt(radius2 - d2)
        # a ray starting inside the sphere only crosses it on the way out
        candidates = [t for t in (adj - thc, adj + thc) if t >= 0.0]
        if not candidates:
            return None
        return min(candidates)

    def surface_normal(self, point):
        return normalize(point - self.center)

    def texture_coords(self, point):
        """Spherical (longitude, latitude) mapping of point onto [0, 1]^2."""
        hit_vec = point - self.center
        u = (1.0 + np.arctan2(hit_vec[2], hit_vec[0]) / np.pi) * 0.5
        v = np.arccos(np.clip(hit_vec[1] / self.radius, -1.0, 1.0)) / np.pi
        return float(u), float(v)


class Plane:

    def __init__(self, origin, normal, material):
        """Create an infinite one-sided plane.

        Parameters:
          origin : (3,) -- any point on the plane
          normal : (3,) -- plane normal; rays are only hit when travelling along it
          material : Material -- the material of the surface
        """
        self.origin = vec(origin)
        self.normal = normalize(vec(normal))
        self.material = material

    def intersect(self, ray):
        """Computes the distance at which ray crosses this plane, if it approaches from the front.

        Parameters:
          ray : Ray -- the ray to intersect with the plane
        Return:
          float or None -- None if the ray is parallel, hits the back face, or points away
        """
        denom = dot(self.normal, ray.direction)
        if denom > PLANE_EPSILON:
            distance = dot(self.origin - ray.origin, self.normal) / denom
            if distance >= 0.0:
                return distance
        return None

    def surface_normal(self, point):
        return -self.normal

    def texture_coords(self, point):
        x_axis = np.cross(self.normal, vec([0, 0, 1]))
        if length(x_axis) == 0:
            x_axis = np.cross(self.normal, vec([0, 1, 0]))
        y_axis = np.cross(self.normal, x_axis)
        hit_vec = point - self.origin
        return dot(hit_vec, x_axis), dot(hit_vec, y_axis)
